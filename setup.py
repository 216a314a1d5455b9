from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="cardano-gov-tracker",
    version="0.1.0",
    author="Governance Tracker Team",
    author_email="team@govtracker.example.com",
    description="Cardano governance ingestion & voting-power reconciliation engine",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/cardano-gov-tracker",
    packages=find_packages(exclude=["govtrack.tests", "govtrack.tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.3.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.28.0",
        "celery>=5.3.0",
        "redis>=4.6.0",
        "httpx>=0.24.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.3.1",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "aiosqlite>=0.19.0",
            "black>=23.7.0",
            "ruff>=0.0.280",
            "mypy>=1.5.1",
            "pre-commit>=3.3.3",
            "types-redis>=4.6.0.3",
        ],
        "test": [
            "pytest>=7.3.1",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=4.1.0",
            "aiosqlite>=0.19.0",
        ],
    },
)

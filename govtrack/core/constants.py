"""Ledger and sync constants."""

DEFAULT_PROPOSAL_TITLE = "Untitled Proposal"

# Pseudo-DReps that stake can delegate to instead of a registered DRep
DREP_ALWAYS_ABSTAIN_ID = "drep_always_abstain"
DREP_ALWAYS_NO_CONFIDENCE_ID = "drep_always_no_confidence"
AUTO_DREP_IDS = frozenset({DREP_ALWAYS_ABSTAIN_ID, DREP_ALWAYS_NO_CONFIDENCE_ID})

# A DRep is inactive when it neither voted nor updated its certificate
# within this many epochs (ledger parameter drepActivity).
DREP_ACTIVITY_WINDOW_EPOCHS = 20
# First epoch after the Conway bootstrap phase; inactivity is not tracked before it.
DREP_INACTIVITY_START_EPOCH = 537

# CC yes share (percent) required for a "Constitutional" verdict
CC_CONSTITUTIONAL_THRESHOLD_PERCENT = 67

# Mainnet slot/epoch geometry, used to place block times into epochs
SHELLEY_START_EPOCH = 208
SHELLEY_START_TIME = 1596059091
EPOCH_LENGTH_SECONDS = 432000

# Sync-on-read scope keys
OVERVIEW_SCOPE = "overview"
PROPOSAL_SCOPE_PREFIX = "proposal:"

# Scheduled job names (overlap-guard keys)
PROPOSAL_SYNC_JOB = "proposal-sync"
VOTER_POWER_SYNC_JOB = "voter-power-sync"

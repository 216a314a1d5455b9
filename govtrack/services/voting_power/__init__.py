from govtrack.services.voting_power.aggregator import VotingPowerAggregator, VotingPowerResult, select_reference_epoch

__all__ = ["VotingPowerAggregator", "VotingPowerResult", "select_reference_epoch"]

class SavriiError(Exception):
    """Base exception for the Savrii backend."""

    pass


class PlanConfigurationError(SavriiError):
    """Raised when plan or feature tables are inconsistent."""

    pass


class FeatureAccessDenied(SavriiError):
    """Raised when a user's plan does not unlock a feature."""

    def __init__(self, feature: str, upgrade_target: str, trial_expired: bool = False):
        self.feature = feature
        self.upgrade_target = upgrade_target
        self.trial_expired = trial_expired
        if trial_expired:
            message = f"Trial expired; upgrade to '{upgrade_target}' to use '{feature}'"
        else:
            message = f"Feature '{feature}' requires the '{upgrade_target}' plan"
        super().__init__(message)

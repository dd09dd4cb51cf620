class ModShieldError(Exception):
    """Base class for all ModShield errors"""


class StoreUnavailable(ModShieldError):
    """A record store get/set/delete failed"""


class MalformedRecord(ModShieldError):
    """A stored value could not be parsed into the expected record"""


class ModerationApiError(ModShieldError):
    """The moderation API rejected a call or timed out"""

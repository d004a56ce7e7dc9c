class TrackShieldError(Exception):
    pass


class ActivityNotFoundError(TrackShieldError):
    pass


class InvalidPrivacyZoneError(TrackShieldError):
    pass


class TrackDataError(TrackShieldError):
    """Stored track data of an activity could not be interpreted."""

class PuzzleError(Exception):
    """Base class for every recoverable error raised by the puzzle services."""


class MalformedCatalogError(PuzzleError):
    pass


class CatalogMissingError(PuzzleError):
    pass


class InvalidScoreInputError(PuzzleError, ValueError):
    pass


class GenerationExhaustedError(PuzzleError):
    pass


class PersistenceWriteError(PuzzleError):
    def __init__(self, key: str, message: str = ''):
        super().__init__(f"write failed for {key}: {message}" if message else f"write failed for {key}")
        self.key = key


class UnknownGameError(PuzzleError, LookupError):
    pass


class ArchiveAccessDeniedError(PuzzleError):
    def __init__(self, game_id: str, day_key: str, tier: str):
        super().__init__(f"{tier} access does not include {game_id} on {day_key}")
        self.game_id = game_id
        self.day_key = day_key
        self.tier = tier


class RoundStateError(PuzzleError):
    pass


class RoundNotFoundError(PuzzleError, LookupError):
    pass

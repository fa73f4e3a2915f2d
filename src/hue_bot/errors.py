"""Exception types."""


class HueBotError(Exception):
    """Base class for hue-bot errors."""


class CompileError(HueBotError):
    """A program could not be compiled at all (e.g. unknown API version)."""


class Unmapped(HueBotError):
    """A light, group or input could not be found on the bridge."""


class BotError(HueBotError):
    """Fatal error while executing a program."""


class ClientError(HueBotError):
    """The Hue bridge returned an error or an unexpected response."""


class Cancelled(Exception):
    """A running program was cancelled (e.g. Ctrl+C).

    Not a HueBotError: cancellation is an outcome, not a failure.
    """

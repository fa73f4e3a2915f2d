"""
hue-bot: timed light programs for Philips Hue.

Programs are YAML/JSON trees of transition, serial and parallel steps.
The compiler turns them into a Program, and the Bot runs it:

    src = load_source(Path("blink.yaml"))
    program = build_source(src)
    if program.valid:
        Bot(DeviceMapper(lights, groups, inputs)).execute(program)
"""

from .bot import Bot
from .compiler import build, build_source
from .errors import BotError, Cancelled, CompileError, HueBotError, Unmapped
from .events import CollectingLogger, IOLogger, NullLogger
from .lights import DeviceMapper
from .program import Program, ProgramSource, load_source, read_source

__version__ = "0.1.0"

__all__ = [
    "Bot",
    "build",
    "build_source",
    "BotError",
    "Cancelled",
    "CompileError",
    "HueBotError",
    "Unmapped",
    "CollectingLogger",
    "IOLogger",
    "NullLogger",
    "DeviceMapper",
    "Program",
    "ProgramSource",
    "load_source",
    "read_source",
]

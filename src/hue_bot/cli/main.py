"""hue-bot command line entry point."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from ..config import default_config_path, load_config
from ..errors import HueBotError
from ..lights import Bridge, GroupInput, HueClient, LightInput
from . import runner
from .helpers import Options, get_sources

EXAMPLES = """
examples:
  hue-bot ls
  hue-bot run blink.yaml -l "Desk Lamp" -g Kitchen
  cat blink.yaml | hue-bot run -i -g Kitchen
  hue-bot check blink.yaml fade.yaml -g Kitchen
  hue-bot get-state -l "Desk Lamp"
  hue-bot set-ip 192.168.1.20
"""


class _InputAction(argparse.Action):
    """Collects -l/-g values into one list, in command line order ($1, $2, ...)."""

    def __init__(self, option_strings, dest, input_class=None, **kwargs):
        self.input_class = input_class
        super().__init__(option_strings, dest, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        inputs = list(getattr(namespace, self.dest, None) or [])
        inputs.append(self.input_class(values))
        setattr(namespace, self.dest, inputs)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-l", "--light",
        dest="inputs",
        action=_InputAction,
        input_class=LightInput,
        metavar="LIGHT",
        help="Light id or name (repeatable; becomes $1, $2, ...)",
    )
    common.add_argument(
        "-g", "--group",
        dest="inputs",
        action=_InputAction,
        input_class=GroupInput,
        metavar="GROUP",
        help="Group id or name (repeatable; becomes $1, $2, ...)",
    )
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file (default: $HUE_BOT_CONFIG or ~/.config/hue-bot/config.yaml)",
    )

    parser = argparse.ArgumentParser(
        prog="hue-bot",
        description="Run timed light programs on a Philips Hue bridge",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("ls", parents=[common], help="List all lights and groups")

    for name, help_text in (("run", "Run program(s)"), ("check", "Validate programs and inputs")):
        sub = commands.add_parser(name, parents=[common], help=help_text)
        sub.add_argument("files", nargs="*", help="Program files (YAML or JSON); '-' reads STDIN")
        sub.add_argument("-i", "--stdin", dest="read_stdin", action="store_true", help="Read a program from STDIN")
        sub.add_argument("--debug", action="store_true", help="Print run events to STDOUT")
        if name == "check":
            sub.add_argument(
                "--no-device-check",
                action="store_true",
                help="Only validate the programs, don't contact the bridge",
            )

    commands.add_parser("get-state", parents=[common], help="Print the state of the given lights/groups")

    set_ip = commands.add_parser("set-ip", parents=[common], help="Manually set the bridge IP")
    set_ip.add_argument("ip")
    commands.add_parser("clear-ip", parents=[common], help="Clear a manually set bridge IP")
    commands.add_parser("unregister", parents=[common], help="Clear all connection config")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    opts = Options(
        inputs=args.inputs or [],
        read_stdin=getattr(args, "read_stdin", False),
        debug=getattr(args, "debug", False),
        no_device_check=getattr(args, "no_device_check", False),
    )
    config_path = args.config or default_config_path()

    if args.command == "set-ip":
        return runner.set_ip(config_path, args.ip, opts)
    if args.command == "clear-ip":
        return runner.clear_ip(config_path, opts)
    if args.command == "unregister":
        return runner.unregister(config_path, opts)

    if args.command == "get-state" and not opts.inputs:
        parser.error("get-state needs at least one -l LIGHT or -g GROUP")

    sources = []
    if args.command in ("run", "check"):
        # A program piped in with no files is read from STDIN
        if not args.files and not opts.read_stdin and not sys.stdin.isatty():
            opts.read_stdin = True
        try:
            sources = get_sources(args.files, opts)
        except (OSError, ValueError) as e:
            print(e, file=sys.stderr)
            return 1
        if not sources:
            parser.error(f"{args.command} needs at least one program file")

    if args.command == "check" and opts.no_device_check:
        return runner.check(sources, [], [], opts)

    client = HueClient(load_config(config_path), config_path)
    error = client.connect()
    if error:
        print(error, file=sys.stderr)
        return 1

    try:
        bridge = Bridge(client)
        lights, groups = bridge.lights(), bridge.groups()
    except HueBotError as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1

    if args.command == "ls":
        return runner.ls(lights, groups, opts)
    if args.command == "run":
        return runner.run(sources, lights, groups, opts)
    if args.command == "check":
        return runner.check(sources, lights, groups, opts)
    return runner.get_state(lights, groups, opts)


if __name__ == "__main__":
    sys.exit(main())

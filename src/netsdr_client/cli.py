#!/usr/bin/env python3
"""
NetSDR Client - Interactive Console

Usage: netsdr-client [--config FILE] [--host H] [--tcp-port P] [--udp-port P]
                     [--record PATH] [--log-level L] [--strict] [--timeout S]

Keys:
    c               connect and initialize the receiver
    d               disconnect
    f <hz> [chan]   change frequency (channel defaults to 0)
    s               start IQ, or stop it if running
    i               status
    q               quit
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import threading
from collections.abc import Callable

from netsdr_client import __version__
from netsdr_client.client.sdr_client import SdrClient
from netsdr_client.config.schema import NetSdrClientConfig
from netsdr_client.core.errors import NetSdrError
from netsdr_client.core.logging_config import configure_logging
from netsdr_client.stream.recorder import IQRecorder

logger = logging.getLogger(__name__)

MENU = "[c] connect  [d] disconnect  [f <hz> [chan]] frequency  [s] start/stop IQ  [i] status  [q] quit"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netsdr-client",
        description="NetSDR receiver control and IQ capture console",
    )
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file")
    parser.add_argument("--host", type=str, default=None, help="Receiver address")
    parser.add_argument("--tcp-port", type=int, default=None, help="Receiver control port")
    parser.add_argument("--udp-port", type=int, default=None, help="Local IQ stream port")
    parser.add_argument(
        "--record", type=str, default=None, metavar="PATH", help="Record IQ samples to PATH"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console and file log level",
    )
    parser.add_argument(
        "--strict", action="store_true", help="Only accept matching responses; fail on NAK"
    )
    parser.add_argument(
        "--timeout", type=float, default=None, metavar="S", help="Response timeout in seconds"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> NetSdrClientConfig:
    """Configuration file (or defaults) with command-line overrides applied."""
    config = NetSdrClientConfig.from_yaml(args.config) if args.config else NetSdrClientConfig()
    data = config.model_dump()

    if args.host is not None:
        data["control"]["host"] = args.host
    if args.tcp_port is not None:
        data["control"]["port"] = args.tcp_port
    if args.udp_port is not None:
        data["stream"]["port"] = args.udp_port
    if args.record is not None:
        data["recorder"]["enabled"] = True
        data["recorder"]["output_path"] = args.record
    if args.log_level is not None:
        data["logging"]["level"] = args.log_level
    if args.strict:
        data["exchange"]["validate_responses"] = True
    if args.timeout is not None:
        data["exchange"]["response_timeout_s"] = args.timeout

    return NetSdrClientConfig.model_validate(data)


def parse_command(line: str) -> tuple[str, list[str]]:
    """Split an input line into a lower-case command key and its arguments."""
    parts = line.strip().split()
    if not parts:
        return "", []
    return parts[0].lower(), parts[1:]


class Console:
    """
    Maps console commands onto an SdrClient.

    Command errors are reported and the console keeps running.
    """

    def __init__(
        self,
        client: SdrClient,
        recorder: IQRecorder | None = None,
        output: Callable[[str], None] = print,
    ):
        self.client = client
        self.recorder = recorder
        self._output = output

    async def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the console should exit."""
        key, args = parse_command(line)
        if not key:
            return True
        if key == "q":
            return False

        try:
            await self._dispatch(key, args)
        except (NetSdrError, ValueError) as e:
            logger.error(f"Command '{key}' failed: {e}")
            self._output(f"Error: {e}")
        return True

    async def _dispatch(self, key: str, args: list[str]) -> None:
        if key == "c":
            await self.client.connect()
            self._output(f"State: {self.client.state.value}")
        elif key == "d":
            self.client.disconnect()
            self._output(f"State: {self.client.state.value}")
        elif key == "f":
            if not args:
                raise ValueError("usage: f <hz> [channel]")
            frequency = int(args[0])
            channel = int(args[1]) if len(args) > 1 else 0
            await self.client.change_frequency(frequency, channel)
        elif key == "s":
            if self.client.iq_started:
                await self.client.stop_iq()
            else:
                await self.client.start_iq()
            self._output(f"IQ started: {self.client.iq_started}")
        elif key == "i":
            self._output(json.dumps(self.client.status(), indent=2, default=str))
        else:
            self._output(MENU)

    async def shutdown(self) -> None:
        await self.client.close()
        if self.recorder is not None:
            summary = self.recorder.stop()
            if summary is not None:
                self._output(f"Recorded {summary.num_values} values to {summary.path}")


def start_input_thread(
    loop: asyncio.AbstractEventLoop, lines: asyncio.Queue, prompt: str = "> "
) -> threading.Thread:
    """
    Feed stdin lines into an asyncio queue from a daemon thread.

    None is queued at end of input. The thread never blocks interpreter
    exit, so Ctrl-C ends the console while input() is still waiting.
    """

    def _reader():
        while True:
            try:
                line = input(prompt)
            except (EOFError, OSError):
                line = None
            try:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            except RuntimeError:
                # Loop closed
                return
            if line is None:
                return

    thread = threading.Thread(target=_reader, name="netsdr-console-input", daemon=True)
    thread.start()
    return thread


async def run_console(config: NetSdrClientConfig) -> int:
    client = SdrClient.from_config(config)

    recorder = None
    if config.recorder.enabled:
        recorder = IQRecorder(config.recorder.output_path, config.stream.sample_size_bits)
        recorder.start()
        client.stream.add_sample_handler(recorder.write_samples)

    console = Console(client, recorder)
    lines: asyncio.Queue = asyncio.Queue()

    print(MENU)
    start_input_thread(asyncio.get_running_loop(), lines)
    try:
        while True:
            line = await lines.get()
            if line is None:
                break
            if not await console.handle(line):
                break
    finally:
        await console.shutdown()

    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args)

    configure_logging(config.logging)

    print("=" * 60)
    print(f"NetSDR Client {__version__}")
    print("=" * 60)
    print(f"Receiver:    {config.control.host}:{config.control.port}")
    print(f"IQ stream:   {config.stream.host}:{config.stream.port}")
    print(f"Recording:   {config.recorder.output_path if config.recorder.enabled else 'Disabled'}")
    print(f"Strict mode: {'Enabled' if config.exchange.validate_responses else 'Disabled'}")
    print("=" * 60)

    try:
        return asyncio.run(run_console(config))
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""
udpbeacon — LAN peer discovery

Main entry point.  Starts the beacon and either a CLI loop or the TUI
dashboard showing discovered peers.

Usage:
    udpbeacon                    # start TUI mode (default)
    udpbeacon --cli              # start CLI mode
    udpbeacon --port 6000        # advertise listening port 6000
    udpbeacon --shot 3           # broadcast three beacons and exit
"""

import argparse
import logging

from .config import BEACON_INTERVAL_MS, BEACON_PORT
from .discovery import BeaconDiscovery
from .errors import BeaconError
from .peers import PeerTable


def _print_help() -> None:
    print("""
  udpbeacon — Commands
  ────────────────────────────────────────────────────
  peers                Show discovered peers on the LAN
  shot [n]             Broadcast our beacon n times (default 1)
  pause                Stop discovery
  resume               Start discovery again
  help                 Show this help message
  quit / exit          Shut down
  ────────────────────────────────────────────────────
""")


def _print_peers(peers: PeerTable) -> None:
    found = peers.get_peers()
    if not found:
        print("  No peers discovered yet (waiting for beacons...).")
        return
    print(f"  {'Identity':<36} {'Address':>22}")
    print(f"  {'-' * 36} {'-' * 22}")
    for p in found:
        print(f"  {str(p.identity):<36} {p.endpoint:>22}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="udpbeacon LAN peer discovery")
    parser.add_argument(
        "--port", type=int, default=BEACON_PORT, help="listening port to advertise"
    )
    parser.add_argument(
        "--beacon-port", type=int, default=BEACON_PORT, help="UDP port beacons travel on"
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=BEACON_INTERVAL_MS,
        help="milliseconds between beacons",
    )
    parser.add_argument(
        "--receive-only", action="store_true", help="listen without broadcasting"
    )
    parser.add_argument(
        "--shot", type=int, metavar="N", help="broadcast N beacons and exit"
    )
    parser.add_argument(
        "--cli", action="store_true", help="Launch CLI mode instead of TUI dashboard"
    )
    parser.add_argument("--log-level", default="WARNING", help="logging level")
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    peers = PeerTable()
    discovery = BeaconDiscovery(
        peers,
        port=args.port,
        interval_ms=args.interval,
        receive_only=args.receive_only,
        beacon_port=args.beacon_port,
    )

    try:
        # ── One-shot mode ──
        if args.shot is not None:
            discovery.shot(args.shot).join()
            # stop() drains pending notifications, so any on_error has landed
            discovery.stop()
            if peers.last_error is not None:
                print(f"  [!] Shot failed: {peers.last_error}")
            else:
                print(f"  Sent {args.shot} beacon(s) on UDP port {args.beacon_port}.")
            return

        discovery.start()

        # ── TUI mode (default) ──
        if not args.cli:
            from .tui import run_tui

            run_tui(discovery, peers)
            return

        # ── CLI mode ──
        print(f"  udpbeacon started  [identity={discovery.identity}  port={args.port}]")
        print("  Type 'help' for available commands.\n")
        _cli_loop(discovery, peers)
    finally:
        discovery.release()


def _cli_loop(discovery: BeaconDiscovery, peers: PeerTable) -> None:
    try:
        while True:
            try:
                raw = input("udpbeacon> ").strip()
            except EOFError:
                break

            if not raw:
                continue

            tokens = raw.split()
            cmd = tokens[0].lower()

            if cmd in ("quit", "exit"):
                print("  Shutting down...")
                break

            elif cmd == "help":
                _print_help()

            elif cmd == "peers":
                _print_peers(peers)

            elif cmd == "shot":
                try:
                    n = int(tokens[1]) if len(tokens) > 1 else 1
                    discovery.shot(n)
                except ValueError:
                    print("  Usage: shot [n]")
                except BeaconError as e:
                    print(f"  [!] {e}")

            elif cmd == "pause":
                discovery.stop()
                print("  Discovery paused.")

            elif cmd == "resume":
                try:
                    discovery.start()
                    print("  Discovery resumed.")
                except BeaconError as e:
                    print(f"  [!] {e}")

            else:
                print(f"  Unknown command: {cmd}  (type 'help' for commands)")

            if peers.last_error is not None:
                print(f"  [!] Discovery error: {peers.last_error}")
                peers.last_error = None

    except KeyboardInterrupt:
        print("\n  Interrupted. Shutting down...")

    print("  Goodbye.")


if __name__ == "__main__":
    main()

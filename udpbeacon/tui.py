"""
udpbeacon TUI — a terminal dashboard of discovered peers.

Built with Textual.  Launched via `udpbeacon` (default mode of peer.py).
"""

from __future__ import annotations

from datetime import datetime

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Label, RichLog

from .discovery import BeaconDiscovery
from .errors import BeaconError
from .peers import Peer, PeerTable

POLL_INTERVAL = 1.0


def _format_time(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%H:%M:%S")


class BeaconApp(App):
    """udpbeacon — LAN Peer Discovery Dashboard."""

    TITLE = "UDPBEACON"
    SUB_TITLE = "LAN Peer Discovery"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    #peers-table { height: 2fr; }
    #log-panel { height: 1fr; border-top: solid $accent; }
    """

    BINDINGS = [
        Binding("s", "shot", "Shot", show=True),
        Binding("p", "toggle_discovery", "Pause/Resume", show=True),
        Binding("q", "quit_app", "Quit", show=True),
    ]

    def __init__(self, discovery: BeaconDiscovery, peers: PeerTable):
        super().__init__()
        self.discovery = discovery
        self.peers = peers
        self._shown: set = set()

    # --------------------------------------------------------------------------
    # Layout
    # --------------------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield Header()
        yield DataTable(id="peers-table")
        with Vertical(id="log-panel"):
            yield Label(" LOG", id="log-title")
            yield RichLog(id="log-view", highlight=True, markup=True)
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#peers-table", DataTable)
        table.add_columns("Identity", "Address", "Port", "First seen", "Last seen")
        table.cursor_type = "row"
        table.zebra_stripes = True

        self.set_interval(POLL_INTERVAL, self._poll_peers)

        mode = "receive only" if self.discovery.is_receive_only() else "broadcasting"
        self._log(
            f"Beacon started  [bold #5ec4ff]{self.discovery.identity}[/]  "
            f"port={self.discovery.port}  ({mode})"
        )
        self._log(f"Listening on UDP port {self.discovery.beacon_port}...")

    # --------------------------------------------------------------------------
    # Peer polling
    # --------------------------------------------------------------------------

    def _log(self, message: str) -> None:
        log_view = self.query_one("#log-view", RichLog)
        ts = datetime.now().strftime("%H:%M:%S")
        log_view.write(f"[#41505e]{ts}[/]  {message}")

    def _poll_peers(self) -> None:
        peers = self.peers.get_peers()
        current = {p.identity for p in peers}

        for p in peers:
            if p.identity not in self._shown:
                self._log(f"[#00ff9f]Discovered[/] peer [#718ca1]{p.endpoint}[/]")
        for identity in self._shown - current:
            self._log(f"[#e74c3c]Lost[/] peer [#718ca1]{identity}[/]")
        self._shown = current

        if self.peers.last_error is not None:
            self._log(f"[#e74c3c]Error:[/] {self.peers.last_error}")
            self.peers.last_error = None

        self._render_peers(peers)

    def _render_peers(self, peers: list[Peer]) -> None:
        table = self.query_one("#peers-table", DataTable)
        table.clear()
        for p in peers:
            table.add_row(
                str(p.identity),
                p.address,
                str(p.port),
                _format_time(p.first_seen),
                _format_time(p.last_seen),
            )

    # --------------------------------------------------------------------------
    # Actions
    # --------------------------------------------------------------------------

    def action_shot(self) -> None:
        try:
            self.discovery.shot()
            self._log("Sent one beacon.")
        except BeaconError as e:
            self._log(f"[#e74c3c]Error:[/] {e}")

    def action_toggle_discovery(self) -> None:
        self._toggle_discovery()

    @work(thread=True)
    def _toggle_discovery(self) -> None:
        if self.discovery.is_active():
            self.discovery.stop()
            self.app.call_from_thread(self._log, "[#e0c97f]Discovery paused.[/]")
            return
        try:
            self.discovery.start()
            self.app.call_from_thread(self._log, "Discovery resumed.")
        except BeaconError as e:
            self.app.call_from_thread(self._log, f"[#e74c3c]Error:[/] {e}")

    def action_quit_app(self) -> None:
        self.exit()


# ==============================================================================
# Entry point (called from peer.py)
# ==============================================================================


def run_tui(discovery: BeaconDiscovery, peers: PeerTable) -> None:
    """Launch the udpbeacon TUI."""
    app = BeaconApp(discovery, peers)
    app.run()

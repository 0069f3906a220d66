"""Command line entry point: run the sync server or a live dashboard."""

import argparse
import logging
import sys
import threading

from rich.console import Console
from rich.logging import RichHandler
from rich.status import Status
from rich.table import Table

from pd_diagnosys_portal.admin_actions import AdminActions
from pd_diagnosys_portal.qr_codes import get_all_qr_codes
from pd_diagnosys_portal.reconciliation import DASHBOARD_SYNC_TIMEOUT, REFRESH_INTERVAL, Reconciler
from pd_diagnosys_portal.records import parse_timestamp, utc_now
from pd_diagnosys_portal.server import DATA_FILE, HOST, PORT, run_server
from pd_diagnosys_portal.storage import LocalStore
from pd_diagnosys_portal.sync_client import SERVER_URL, SyncClient

console = Console()

STATUS_BADGES = {
    "active": "[green]Active[/green]",
    "available": "[green]Active[/green]",
    "busy": "[yellow]Busy[/yellow]",
    "offline": "[dim]Offline[/dim]",
    "book_appointment": "[bold blue]Book Appointment[/bold blue]",
}


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def time_ago(timestamp, now=None) -> str:
    """Human readable age of an ISO timestamp."""
    moment = parse_timestamp(timestamp)
    if moment is None:
        return "Unknown"
    now = now or utc_now()
    minutes = int((now - moment).total_seconds() // 60)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


def build_patient_table(records: list[dict]) -> Table:
    table = Table(title=f"Patients ({len(records)})")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Status")
    table.add_column("Last login")
    table.add_column("Analyses", justify="right")
    table.add_column("Appointment requested")

    for record in records:
        status = record.get("status", "")
        table.add_row(
            record.get("patientName", ""),
            record.get("patientEmail", ""),
            STATUS_BADGES.get(status, status),
            time_ago(record.get("lastLogin")),
            str(record.get("totalAnalyses", 0)),
            time_ago(record["appointmentRequestedAt"]) if record.get("appointmentRequestedAt") else "-",
        )
    return table


def render_admin_tables(store: LocalStore, client: SyncClient) -> None:
    admin = AdminActions(store, client)

    doctors = Table(title="Doctors")
    doctors.add_column("ID")
    doctors.add_column("Name")
    doctors.add_column("Email")
    for doctor in admin.list_doctors():
        doctors.add_row(doctor.id, doctor.name, doctor.email)
    console.print(doctors)

    qr_table = Table(title="QR Codes")
    qr_table.add_column("ID")
    qr_table.add_column("Doctor")
    qr_table.add_column("Last sign-in")
    qr_table.add_column("Active")
    for qr in get_all_qr_codes(store):
        qr_table.add_row(qr["id"], qr.get("doctorName", ""), time_ago(qr.get("lastSignIn")), "yes" if qr.get("isActive") else "no")
    console.print(qr_table)


def run_dashboard(role: str, once: bool, server_url: str, db_path: str | None) -> None:
    """Reconcile every REFRESH_INTERVAL seconds and redraw the patient table."""
    store = LocalStore(db_path)
    client = SyncClient(server_url, timeout=DASHBOARD_SYNC_TIMEOUT)
    reconciler = Reconciler(store, client)

    def redraw(records: list[dict]) -> None:
        console.clear()
        console.print(f"[bold blue]PD Diagnosys - {role.title()} Dashboard[/bold blue]  ({server_url})\n")
        console.print(build_patient_table(records))
        if role == "admin":
            render_admin_tables(store, client)

    if once:
        with Status("Syncing...", console=console, spinner="dots"):
            records = reconciler.run_once()
        redraw(records)
        return

    stop_event = threading.Event()
    try:
        reconciler.run_forever(stop_event, REFRESH_INTERVAL, on_refresh=redraw)
    except KeyboardInterrupt:
        stop_event.set()
        console.print("\n[bold blue]Goodbye![/bold blue]")


def check_health(server_url: str) -> int:
    result = SyncClient(server_url).check_health()
    if result:
        console.print(f"[green]Server is running![/green] {result}")
        return 0
    console.print("[bold red]Server is not running.[/bold red] Start it with: pd-portal serve")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pd-portal", description="PD Diagnosys sync tools")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the sync server")
    serve.add_argument("--host", default=HOST)
    serve.add_argument("--port", type=int, default=PORT)
    serve.add_argument("--data-file", default=str(DATA_FILE))

    dashboard = sub.add_parser("dashboard", help="Live patient dashboard")
    dashboard.add_argument("--role", choices=["doctor", "admin"], default="doctor")
    dashboard.add_argument("--once", action="store_true", help="Run a single sync pass and exit")
    dashboard.add_argument("--server-url", default=SERVER_URL)
    dashboard.add_argument("--local-db", default=None)

    health = sub.add_parser("health", help="Check that the sync server is up")
    health.add_argument("--server-url", default=SERVER_URL)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "serve":
        run_server(args.host, args.port, args.data_file)
        return 0
    if args.command == "dashboard":
        run_dashboard(args.role, args.once, args.server_url, args.local_db)
        return 0
    if args.command == "health":
        return check_health(args.server_url)
    return 1


if __name__ == "__main__":
    sys.exit(main())

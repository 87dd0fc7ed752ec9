from dotenv import load_dotenv
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

load_dotenv(".env")

import logging
import time
from typing import Optional

import typer

from app.core.database import SessionLocal
from app.core.logging_config import configure_logging
from app.core.settings import settings
from app.services.reconciler import find_stale_reservations, sweep_stale_reservations

logger = logging.getLogger("ledger.watchdog")

cli = typer.Typer(add_completion=False, help="Refund credit reservations whose job never reported back.")


def _run_once(older_than: int, limit: int, dry_run: bool) -> int:
    db = SessionLocal()
    try:
        if dry_run:
            stale = find_stale_reservations(db, older_than, limit=limit)
            for entry in stale:
                typer.echo(f"{entry.user_id}\t{entry.request_id}\t{entry.action}\t{entry.amount}\t{entry.created_at}")
            typer.echo(f"stale={len(stale)}")
            return 0
        report = sweep_stale_reservations(db, older_than_seconds=older_than, limit=limit)
        typer.echo(
            f"scanned={report.scanned} refunded={report.refunded} skipped={report.skipped} errors={len(report.errors)}"
        )
        return 1 if report.errors else 0
    finally:
        db.close()


@cli.command()
def main(
    older_than: Optional[int] = typer.Option(None, help="Seconds a reservation may stay open before it is refunded."),
    limit: int = typer.Option(500, min=1, help="Maximum reservations handled per pass."),
    interval: int = typer.Option(0, min=0, help="Repeat every N seconds; 0 runs a single pass."),
    dry_run: bool = typer.Option(False, "--dry-run", help="List stale reservations without refunding."),
) -> None:
    configure_logging()
    timeout = int(older_than or settings.reservation_timeout_seconds)
    if interval <= 0:
        raise typer.Exit(code=_run_once(timeout, limit, dry_run))

    logger.info("watchdog.start timeout=%s interval=%s", timeout, interval)
    while True:
        try:
            _run_once(timeout, limit, dry_run)
        except Exception:
            logger.exception("watchdog.pass.error")
        time.sleep(interval)


if __name__ == "__main__":
    cli()

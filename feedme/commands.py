import click

from feedme.services.delivery_service import dispatch_pending_handoffs
from feedme.services.session_service import advance_sessions


def register_commands(app):
    @app.cli.command("advance-sessions")
    def advance_sessions_command():
        """Activate started sessions and auto-pass/close expired ones."""
        result = advance_sessions()
        click.echo(
            f"activated={result['activated']} closed={result['closed']} "
            f"auto_passed={result['autoPassed']}"
        )

    @app.cli.command("dispatch-deliveries")
    @click.option("--limit", default=50, show_default=True, help="Max handoffs to dispatch.")
    def dispatch_deliveries_command(limit):
        """Create provider deliveries for paid orders waiting on a handoff."""
        result = dispatch_pending_handoffs(limit=limit)
        click.echo(f"dispatched={result['dispatched']} failed={result['failed']}")

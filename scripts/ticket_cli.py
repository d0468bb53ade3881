#!/usr/bin/env python3
"""Interactive ticket CLI for testing the support agent service."""

import sys

import httpx
from cuid2 import cuid_wrapper
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

cuid = cuid_wrapper()

OUTCOME_STYLES = {
    "resolved": "green",
    "responded": "cyan",
    "escalated": "red",
    "pending": "yellow",
}


class TicketCLI:
    """Interactive interface that posts customer messages as support tickets."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize ticket CLI."""
        self.base_url = base_url
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)
        self.customer_id: str | None = "CUST_001"
        self._new_conversation()

    def _new_conversation(self) -> None:
        self.conversation_id = f"conv_{cuid()}"
        self.previous_messages: list[dict] = []

    def start(self) -> None:
        """Start the interactive ticket session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Support Agent - Interactive Tickets[/bold blue]\n"
                "Type a customer message to send it as a ticket.\n"
                "Commands: /help, /new, /customer <id>, /analyze <text>, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to the service at {self.base_url}. Is it running?[/red]")
            return

        self.console.print("[green]Connected to support agent service[/green]")
        self._show_status()

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]Customer[/bold cyan]")
                command = user_input.strip()

                if command.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif command.lower() == "/help":
                    self._show_help()
                elif command.lower() == "/new":
                    self._new_conversation()
                    self._show_status()
                elif command.lower().startswith("/customer"):
                    self.customer_id = command[len("/customer") :].strip() or None
                    self._show_status()
                elif command.lower().startswith("/analyze"):
                    self._analyze(command[len("/analyze") :].strip())
                elif command:
                    self._send_ticket(command)

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _post(self, path: str, payload: dict) -> dict | None:
        try:
            with self.console.status("[dim]Working...[/dim]"):
                response = self.client.post(f"{self.base_url}{path}", json=payload)
        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")
            return None

        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return None
        return response.json()

    def _send_ticket(self, message: str) -> None:
        payload = {
            "ticket_content": message,
            "customer_id": self.customer_id,
            "previous_messages": self.previous_messages,
            "source": "cli",
        }
        data = self._post(f"/tickets/{self.conversation_id}/handle", payload)
        if data is None:
            return

        self.previous_messages.append({"role": "user", "content": message, "sender_type": "user"})
        if data.get("message"):
            self.previous_messages.append({"role": "assistant", "content": data["message"], "sender_type": "ai"})
        self._display_result(data)

    def _analyze(self, content: str) -> None:
        if not content:
            self.console.print("[yellow]Usage: /analyze <text>[/yellow]")
            return

        data = self._post("/analyze", {"content": content})
        if data is None:
            return

        table = Table(title="Message analysis", show_header=False)
        for key in ["category", "priority", "sentiment", "requires_human"]:
            table.add_row(key, str(data.get(key)))
        table.add_row("keywords", ", ".join(data.get("keywords", [])))
        table.add_row("error_codes", ", ".join(data.get("error_codes", [])))
        self.console.print(table)

    def _display_result(self, data: dict) -> None:
        """Display the handled ticket with its outcome and tool calls."""
        outcome = data.get("outcome", "pending")
        style = OUTCOME_STYLES.get(outcome, "white")
        title = f"[bold {style}]{outcome}[/bold {style}]"
        if data.get("escalation_target"):
            title += f" -> {data['escalation_target']}"

        self.console.print(
            Panel(
                Markdown(data.get("message") or "_(no message)_"),
                title=title,
                border_style=style,
                padding=(1, 2),
            )
        )

        tool_calls = data.get("tool_calls") or []
        if tool_calls:
            table = Table(title=f"Tool calls ({data.get('iteration_count', 0)} iterations)")
            table.add_column("#", justify="right")
            table.add_column("Tool")
            table.add_column("Result")
            for i, call in enumerate(tool_calls, start=1):
                result = f"[red]{call['error']}[/red]" if call.get("error") else str(call.get("output"))[:80]
                table.add_row(str(i), call["name"], result)
            self.console.print(table)

        guard_rail = data.get("guard_rail")
        if guard_rail:
            self.console.print(f"[dim]Guard rail {guard_rail.get('rule_id')}: {guard_rail.get('reason')}[/dim]")

    def _show_status(self) -> None:
        self.console.print(
            f"[dim]Conversation: {self.conversation_id} | Customer: {self.customer_id or '(none)'}[/dim]"
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /new - Start a new conversation
• /customer <id> - Switch customer (empty for none)
• /analyze <text> - Triage a message without running the agent
• /quit or /exit - Exit

[bold]Mock customers:[/bold]
• CUST_001 - expired connection, authentication errors
• CUST_002 - free plan at its API limit
• CUST_003 - several connections, rate limit errors

[bold]Try:[/bold]
1. "Mijn verbinding werkt niet meer sinds gisteren"
2. "Ik wil een mens spreken"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the ticket CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    cli = TicketCLI(base_url)
    cli.start()


if __name__ == "__main__":
    main()

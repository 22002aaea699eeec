#!/usr/bin/env python3
"""Interactive chat CLI for the catalog assistant service."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


class ChatCLI:
    """Interactive chat interface keeping the conversation history locally."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.history: list[dict[str, str]] = []
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Catalog Assistant - Interactive Chat[/bold blue]\n"
                "Ask questions about your data catalog.\n"
                "Commands: /help, /tools, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]Connected to catalog assistant[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/tools":
                    self._show_tools()
                    continue
                elif user_input.lower() == "/clear":
                    self.history = []
                    self.console.print("[yellow]History cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                answer = self._ask(user_input)
                if answer is not None:
                    self._display_answer(answer)

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

    def _ask(self, question: str) -> str | None:
        """Send a question with the history so far; record both sides on success."""
        try:
            with self.console.status("[dim]Searching the catalog...[/dim]"):
                response = self.client.post(
                    f"{self.base_url}/ask", json={"question": question, "history": self.history}
                )
        except httpx.HTTPError as e:
            self.console.print(f"[red]Connection error: {e}[/red]")
            return None

        if response.status_code != 200:
            self.console.print(f"[red]API Error: {response.status_code} - {response.text}[/red]")
            return None

        data = response.json()
        if data.get("error"):
            self.console.print(f"[red]{data['error']}[/red]")
            return None

        answer = data.get("answer", "")
        self.history.append({"role": "user", "content": question})
        self.history.append({"role": "assistant", "content": answer})
        return answer

    def _display_answer(self, answer: str) -> None:
        """Display the answer rendered as markdown."""
        self.console.print(
            Panel(
                Markdown(answer),
                title="[bold green]Catalog Assistant[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_tools(self) -> None:
        """Show the tools the assistant can call."""
        try:
            response = self.client.get(f"{self.base_url}/tools")
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.console.print(f"[red]Could not list tools: {e}[/red]")
            return

        tool_list = "\n".join(f"• [bold]{tool['name']}[/bold]: {tool['description']}" for tool in response.json()["tools"])
        self.console.print(Panel(tool_list, title="[yellow]Catalog Tools[/yellow]", border_style="yellow"))

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /tools - List the catalog tools the assistant can use
• /clear - Clear the conversation history
• /quit or /exit - Exit the chat

[bold]Example Questions:[/bold]
1. "Find customer tables"
2. "Which dashboards use the ORDERS table?"
3. "What does the glossary term ARR mean?"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()

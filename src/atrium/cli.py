"""CLI interface for Atrium."""

import os

from .chat import ChatRequest, ChatService
from .config import ChatConfig, config_from_env
from .logging import configure_logger, get_logger
from .memory import MemoryStore
from .session import new_session_id

BANNER = """
╔══════════════════════════════════════════╗
║              Atrium v0.1.0               ║
║     Real Estate Analytics Assistant      ║
╚══════════════════════════════════════════╝

Commands:
  /exit, /quit  - Exit the CLI
  /new          - Start a new session (shares memory from this one)
  /stats        - Show memory statistics
  /clear        - Delete all of your memory
  /help         - Show this help

Type your message and press Enter.
"""


class CLI:
    """Interactive command-line interface for Atrium."""

    def __init__(
        self,
        service: ChatService | None = None,
        config: ChatConfig | None = None,
        user_id: str | None = None,
    ) -> None:
        self.config = config or config_from_env()
        self.service = service or ChatService.from_config(self.config)
        self.user_id = user_id or self.config.default_user
        self.session_id = new_session_id()
        self.logger = get_logger()
        self._share_next = False

    def _format_response(self, content: str, tier: str, cached: bool, fallback: bool) -> str:
        """Format an assistant response for display."""
        output = ["\n" + "─" * 40]
        output.append(content)
        output.append("─" * 40)

        notes = [f"tier: {tier}"]
        if cached:
            notes.append("cached")
        if fallback:
            notes.append("offline fallback")
        output.append(f"({', '.join(notes)})")

        return "\n".join(output)

    def _format_stats(self) -> str:
        stats = self.service.get_stats(self.user_id)
        lines = [
            f"\nMemory for {stats.user_id}:",
            f"  Total memories:     {stats.total_memories}",
            f"  Sessions:           {stats.sessions}",
            f"  Interactions:       {stats.total_interactions}",
            f"  Average importance: {stats.average_importance:.1f}",
        ]
        for kind, count in sorted(stats.by_kind.items()):
            lines.append(f"    {kind}: {count}")
        return "\n".join(lines)

    async def _process_message(self, message: str) -> None:
        """Send a user message through the chat service."""
        request = ChatRequest(
            message=message,
            session_id=self.session_id,
            user_id=self.user_id,
            model=self.config.default_model,
            cross_session_memory=self._share_next,
        )
        self._share_next = False

        response = await self.service.process_chat(request)
        meta = response.metadata
        print(self._format_response(response.content, meta.source_tier, meta.cached, meta.fallback))

    def _new_session(self) -> None:
        old_session_id = self.session_id
        self.session_id = new_session_id()
        self._share_next = True
        self.logger.log("session_reset", session_id=self.session_id, old_session=old_session_id)
        print(f"\n✓ New session: {self.session_id}")

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if cmd == "/new":
            self._new_session()
            return True

        if cmd == "/stats":
            print(self._format_stats())
            return True

        if cmd == "/clear":
            removed = self.service.clear_user_data(self.user_id)
            print(f"\n✓ Deleted {removed} memories")
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        print(f"Unknown command: {command}")
        return True

    async def run(self) -> None:
        """Run the interactive CLI."""
        print(BANNER)
        print(f"Session: {self.session_id}\n")

        self.service.start()
        try:
            while True:
                try:
                    user_input = input("you> ").strip()

                    if not user_input:
                        continue

                    if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                        if not await self._handle_command(user_input):
                            break
                        continue

                    await self._process_message(user_input)

                except KeyboardInterrupt:
                    print("\n\n⚡ Interrupted")
                    try:
                        confirm = input("Exit? (y/n): ").strip().lower()
                        if confirm in ("y", "yes"):
                            print("👋 Goodbye!")
                            break
                    except (KeyboardInterrupt, EOFError):
                        print("\n👋 Goodbye!")
                        break

                except EOFError:
                    print("\n👋 Goodbye!")
                    break
        finally:
            self.service.close()


def print_stats(user_id: str) -> int:
    """Print memory statistics for a user. Returns an exit code."""
    config = config_from_env()
    if config.memory.db_path is None:
        print("❌ Error: ATRIUM_MEMORY_DB is not set, there is no persisted memory to inspect")
        return 1

    store = MemoryStore(config.memory)
    store.open()
    try:
        stats = store.get_stats(user_id)
        for key, value in stats.to_dict().items():
            print(f"{key}: {value}")
    finally:
        store.close()
    return 0


async def run_cli() -> None:
    """Run the CLI with default configuration."""
    configure_logger(os.getenv("ATRIUM_LOG_DIR"))

    if not os.getenv("GROQ_API_KEY"):
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return

    cli = CLI()
    await cli.run()

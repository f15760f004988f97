"""Atrium entry point."""

import asyncio
import sys

from dotenv import find_dotenv, load_dotenv

from .cli import print_stats, run_cli


def main() -> None:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))

    if len(sys.argv) > 1:
        command = sys.argv[1]

        if command == "stats":
            if len(sys.argv) < 3:
                print("Usage: atrium stats <user_id>")
                sys.exit(2)
            sys.exit(print_stats(sys.argv[2]))

    asyncio.run(run_cli())


if __name__ == "__main__":
    main()

"""
Mutumwa Demo - Streaming Chat in the Terminal
=============================================
Talks to a domain webhook and prints the assistant reply as it streams in:
- A spinner runs until the reply bubble is created
- The reply is redrawn on every update (appends and final replacements)
- Commands switch domain or language, or start a new thread
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import halo
from mutumwa.chat import Conversation
from mutumwa.chat import new_user_id
from mutumwa.config import MutumwaConfig
from mutumwa.config import load_config
from mutumwa.exceptions import ConfigError
from mutumwa.types.update import Created
from mutumwa.types.update import Finalized
from mutumwa.types.update import MessageUpdate
from mutumwa.types.update import Updated
from mutumwa.webhook import WebhookClient

# ============================================================================
# Configuration
# ============================================================================

CONFIG_PATH = os.environ.get("MUTUMWA_CONFIG", ".config.yml")


def get_config() -> MutumwaConfig:
    """Load the YAML config if present, else use the built-in domains."""
    if not os.path.exists(CONFIG_PATH):
        return MutumwaConfig()
    return load_config(CONFIG_PATH)


# ============================================================================
# Interactive Chat
# ============================================================================


class Printer:
    """Render reply updates on one terminal line group."""

    def __init__(self) -> None:
        self.spinner = halo.Halo(text="Thinking", spinner="dots")
        self.spinning = False
        self.shown = ""

    def start(self) -> None:
        self.shown = ""
        self.spinner.start()
        self.spinning = True

    def stop(self) -> None:
        if self.spinning:
            self.spinner.stop()
            self.spinning = False

    def __call__(self, update: MessageUpdate) -> None:
        if isinstance(update, Created):
            self.stop()
            print("🤖 Assistant: ", end="", flush=True)
        elif isinstance(update, Updated):
            if update.text.startswith(self.shown):
                print(update.text[len(self.shown):], end="", flush=True)
            else:
                # Final output replaced the streamed text
                print(f"\n🤖 Assistant: {update.text}", end="", flush=True)
            self.shown = update.text
        elif isinstance(update, Finalized):
            print("\n")


async def chat() -> None:
    """Main chat loop."""
    try:
        config = get_config()
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return

    user_id = new_user_id()
    domain = config.default_domain
    language = config.default_language
    conversation = Conversation(user_id=user_id, domain=domain, language=language)
    printer = Printer()

    print("\n" + "=" * 60)
    print("🌍 Welcome to the Mutumwa streaming chat demo!")
    print("=" * 60)
    print(f"Domains: {', '.join(d.value for d in config.domains)}")
    print(f"Domain: {domain} | Language: {language}")
    print("\nCommands:")
    print("  • 'exit' or 'quit' to end the conversation")
    print("  • 'new' to start a new thread")
    print("  • 'domain <name>' to switch domain")
    print("  • 'lang <name>' to switch reply language")
    print("=" * 60 + "\n")

    async with WebhookClient(config) as client:
        while True:
            try:
                user_input = input("💬 You: ").strip()
            except (KeyboardInterrupt, EOFError):
                break

            if not user_input:
                continue

            command, _, arg = user_input.partition(" ")
            if command.lower() in ("exit", "quit"):
                print("\n👋 Goodbye!\n")
                break
            if command.lower() == "new":
                conversation = Conversation(user_id=user_id, domain=domain, language=language)
                print("\n🔄 Started a new thread!\n")
                continue
            if command.lower() == "domain" and arg:
                try:
                    domain = config.domain(arg.strip()).value
                except ConfigError as e:
                    print(f"\n⚠️  {e}\n")
                    continue
                conversation = Conversation(user_id=user_id, domain=domain, language=language)
                print(f"\n🔄 Switched to {domain} (new thread)\n")
                continue
            if command.lower() == "lang" and arg:
                language = arg.strip().lower()
                conversation.language = language
                print(f"\n🔄 Replies will be in {language}\n")
                continue

            printer.start()
            try:
                reply = await conversation.send(client, user_input, on_update=printer)
            finally:
                printer.stop()

            if reply is None:
                print("🤖 Assistant: (no reply)\n")
            elif reply.text != printer.shown:
                if printer.shown:
                    print()
                print(f"🤖 Assistant: {reply.text}\n")


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("MUTUMWA_LOG_LEVEL", "WARNING"))
    asyncio.run(chat())

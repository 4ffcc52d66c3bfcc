"""
AgentFlow - Console Entry Point
===============================

An interactive console for the agent. It:
1. Loads configuration and session secrets
2. Builds the agent (provider + baseline tools)
3. Reads lines from the terminal and runs the agent on each one

Run with:
    python -m agentflow.main

Or after installing:
    agentflow

Commands:
    /auto on|off         Toggle auto-continue after tool calls
    /provider <name>     Switch model provider (openai, anthropic, google)
    /key <name> <value>  Set a session secret (llm, search, cx)
    /clear-keys          Forget all session secrets
    /clear               Start a new conversation
    /search <query>      Run the web search tool directly
    /run <code>          Run a Python snippet in the sandbox directly
    /help                Show this help
    /quit                Exit
"""

import asyncio
import json
import sys

from agentflow.agent import Agent, AgentObserver, RunOutcome, StopReason, ToolInvocation
from agentflow.providers import create_provider
from agentflow.tools import ToolResult
from agentflow.utils.config import Config, SecretStore, get_config
from agentflow.utils.errors import AgentFlowError
from agentflow.utils.logger import Colors, Logger, set_log_level

main_logger = Logger("Main")

PROMPT = "you> "

KEY_ALIASES = {
    "llm": SecretStore.LLM_API_KEY,
    "search": SecretStore.SEARCH_API_KEY,
    "cx": SecretStore.SEARCH_ENGINE_ID,
}


class ConsoleObserver(AgentObserver):
    """Prints conversation events to the terminal."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def print_message(self, role: str, body: str, color: str = "") -> None:
        label = f"{color}{role}>{Colors.RESET}" if color else f"{role}>"
        print(f"{label} {body}", file=self.stream)

    def on_assistant_text(self, text: str) -> None:
        self.print_message("agent", text, Colors.INFO)

    def on_tool_result(self, invocation: ToolInvocation, result: ToolResult) -> None:
        if result.ok:
            body = json.dumps(result.value, indent=2, default=str)
            self.print_message(f"tool:{invocation.name}", body, Colors.DEBUG)
        else:
            self.print_message(f"tool:{invocation.name}", f"Tool error: {result.error}", Colors.ERROR)

    def on_run_finished(self, outcome: RunOutcome) -> None:
        if outcome.stop_reason == StopReason.MAX_ITERATIONS:
            self.print_message("agent", f"Stopped after {outcome.iterations} model calls (iteration limit).", Colors.WARNING)
        elif outcome.stop_reason == StopReason.PAUSED:
            self.print_message("agent", "Tools finished. Auto-continue is off; send a message to continue.", Colors.DIM)


class ConsoleApp:
    """
    The interactive session: one agent, one set of secrets.

    handle_line() is the unit of work; run_forever() just feeds it input.
    """

    def __init__(self, config: Config, secrets: SecretStore, observer: ConsoleObserver | None = None):
        self.config = config
        self.secrets = secrets
        self.observer = observer or ConsoleObserver()
        self.agent = Agent.from_config(config, secrets, observer=self.observer)
        self.running = True

    def say(self, text: str) -> None:
        self.observer.print_message("agent", text, Colors.DIM)

    async def handle_line(self, line: str) -> None:
        """Run the agent on a line, or execute a /command."""
        line = line.strip()
        if not line:
            return

        if line.startswith("/"):
            await self.handle_command(line)
            return

        try:
            await self.agent.run(line)
        except (AgentFlowError, NotImplementedError) as e:
            self.say(f"Error: {e}")

    async def handle_command(self, line: str) -> None:
        command, _, rest = line.partition(" ")
        rest = rest.strip()

        if command in ("/quit", "/exit"):
            self.running = False
        elif command == "/help":
            self.say(__doc__.split("Commands:", 1)[1].rstrip())
        elif command == "/auto":
            self._set_auto(rest)
        elif command == "/provider":
            await self._set_provider(rest)
        elif command == "/key":
            self._set_key(rest)
        elif command == "/clear-keys":
            self.secrets.clear()
            self.say("Keys cleared.")
        elif command == "/clear":
            self.agent.clear_conversation()
            self.say("Conversation cleared.")
        elif command == "/search":
            await self._direct_tool("web_search", {"query": rest, "num_results": 5})
        elif command == "/run":
            await self._direct_tool("run_code", {"code": rest})
        else:
            self.say(f"Unknown command {command}. Try /help.")

    def _set_auto(self, value: str) -> None:
        if value not in ("on", "off"):
            self.say(f"Auto-continue is {'on' if self.agent.auto_continue else 'off'}. Use /auto on|off.")
            return
        self.agent.auto_continue = value == "on"
        self.say(f"Auto-continue {value}.")

    async def _set_provider(self, name: str) -> None:
        try:
            provider = create_provider(name, self.secrets, self.config)
        except ValueError as e:
            self.say(str(e))
            return
        previous, self.agent.provider = self.agent.provider, provider
        await previous.aclose()
        self.say(f"Provider set to {provider.name}.")

    def _set_key(self, rest: str) -> None:
        alias, _, value = rest.partition(" ")
        name = KEY_ALIASES.get(alias)
        if name is None or not value.strip():
            self.say(f"Usage: /key <{'|'.join(KEY_ALIASES)}> <value>")
            return
        self.secrets.set(name, value)
        self.say(f"Saved {alias} key for this session.")

    async def _direct_tool(self, name: str, arguments: dict) -> None:
        # The observer prints the result
        await self.agent.tool_executor.run_tool(name, arguments)

    async def run_forever(self) -> None:
        self.say("Hi! Set your keys with /key, type a task, and press Enter. /help lists commands.")
        while self.running:
            try:
                line = await asyncio.to_thread(input, PROMPT)
            except EOFError:
                break
            await self.handle_line(line)

        await self.agent.provider.aclose()


async def main():
    """Main async entry point."""
    config = get_config()
    set_log_level(config.log_level)

    main_logger.info("Starting AgentFlow...")
    secrets = SecretStore.from_env()

    app = ConsoleApp(config, secrets)
    await app.run_forever()

    main_logger.info("Goodbye")


def run():
    """
    Synchronous entry point.

    This is called when running with the `agentflow` command.
    """
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()

"""
场景引擎使用示例

需要一个运行中的执行服务（默认 http://localhost:3000）。
"""
import asyncio
import logging
from pathlib import Path

from scenario_engine import (
    NodeType, Position, ScenarioParser, ScenarioRegistry, VariableReferenceParser,
    configure_logging, load_settings
)
from scenario_engine.core.validation import reject_cycles, reject_self_loops, validate_scenario
from scenario_engine.integrations.event_bus import ALL_TOPICS


logger = logging.getLogger(__name__)


async def build_and_run(registry: ScenarioRegistry):
    """在活动场景中搭建 Schedule -> HTTP -> Telegram 并运行"""
    schedule = registry.add_node(NodeType.SCHEDULE, Position(0, 0))
    schedule.config.interval = 3600

    fetch = registry.add_node(NodeType.HTTP, Position(200, 0))
    fetch.name = "Fetch"
    fetch.config.url = "https://api.example.com/report"

    notify = registry.add_node(NodeType.TELEGRAM, Position(400, 0))
    notify.config.bot_token = "<bot token>"
    notify.config.chat_id = "<chat id>"
    notify.config.message = "Report at {{$timestamp}}: {{$result.Fetch.data}}"

    registry.connect(schedule.id, fetch.id)
    registry.connect(fetch.id, notify.id)

    # 变量补全候选
    for suggestion in VariableReferenceParser().suggestions(registry.active_scenario, notify):
        logger.info(f"Suggestion: {suggestion}")

    for problem in validate_scenario(registry.active_scenario):
        logger.warning(problem)

    await registry.run()
    await registry.test_node(fetch)


def load_from_file(registry: ScenarioRegistry, path: Path):
    """从 YAML/JSON 文件加载场景并设为活动场景"""
    scenario = ScenarioParser(validators=registry.validators).parse(path)
    registry.scenarios.append(scenario)
    registry.activate(scenario)
    return scenario


async def main():
    settings = load_settings()
    configure_logging(settings.log_level)

    registry = ScenarioRegistry(settings=settings, validators=[reject_self_loops, reject_cycles])
    registry.event_bus.subscribe(ALL_TOPICS, lambda event: logger.debug(f"Event: {event.topic}"))

    try:
        await build_and_run(registry)

        definition = Path(__file__).parent / "daily_report.yaml"
        if definition.exists():
            load_from_file(registry, definition)
            await registry.run()
    finally:
        await registry.aclose()

    for entry in reversed(registry.logs.entries):
        print(f"[{entry.timestamp:%H:%M:%S}] {entry.message}")


if __name__ == "__main__":
    asyncio.run(main())

from __future__ import annotations

import asyncio
import logging

from .analytics import AnalysisSession, AnalyticsError, SourceRegistry, configure_collation, run_pipeline
from .config import get_settings
from .domain import SHEET_TABS
from .integrations import SheetsClient
from .services import InsightService, request_from_pipeline

logger = logging.getLogger(__name__)

_HELP = """Commands:
  sources                      list sources and row counts
  use <tab>[, <tab>...]        select sources for analysis
  filter <column>|<op>|<value> add a filter
  clear                        remove all filters
  sort <column>                sort by column (repeat to flip direction)
  summary                      show summary statistics
  ask <question>               generate an AI insight
  provider <name>              gemini-pro | openai-gpt-4 | anthropic-claude-3
  exit"""


def _print_summary(registry: SourceRegistry, session: AnalysisSession) -> None:
    result = run_pipeline(registry, session)
    print(f"\nRows: {result.filtered_rows} of {result.total_rows} (combined {len(result.combined_rows)})")
    for name, stats in result.summary.metrics.items():
        print(f"  {name}: min={stats.min:g} max={stats.max:g} avg={stats.avg:.2f} sum={stats.sum:g}")
    for name, stats in result.summary.dimensions.items():
        top = ", ".join(f"{v.value} ({v.count})" for v in stats.top_values or [])
        print(f"  {name}: {stats.unique_count} unique{'; top: ' + top if top else ''}")
    for row in result.preview:
        print(f"  {row}")


async def _ask(
    service: InsightService,
    registry: SourceRegistry,
    session: AnalysisSession,
    question: str,
    provider: str,
) -> str:
    result = run_pipeline(registry, session)
    request = request_from_pipeline(result, session, question, provider, get_settings().default_currency, session_id="cli")
    response = await service.generate_insight(request)
    if response.error:
        return f"Error: {response.error}"
    usage = response.token_usage
    footer = f"\n\n[tokens: {usage.input_tokens} in / {usage.output_tokens} out]" if usage else ""
    return response.text + footer


def run_cli() -> None:
    configure_collation()
    settings = get_settings()
    registry = asyncio.run(SourceRegistry.load(SheetsClient(settings.sheet_url, settings.request_timeout_s), SHEET_TABS))
    service = InsightService(settings)
    session = AnalysisSession(
        row_limit_per_source=settings.row_limit_per_source,
        preview_row_count=settings.preview_row_count,
    )
    default = registry.default_source()
    if default:
        session.select_sources([default])
    provider = settings.default_provider

    print("Ad Insights Started.")
    print(_HELP)
    while True:
        line = input(f"\n[{', '.join(session.selected_sources) or 'no source'}] > ").strip()
        command, _, arg = line.partition(" ")
        command = command.lower()
        try:
            if command in {"exit", "quit"}:
                break
            if command == "sources":
                for source in registry.list_sources():
                    print(f"  {source.id}: {source.row_count} rows{'' if source.available else ' (unavailable)'}")
            elif command == "use":
                session.select_sources([s.strip() for s in arg.split(",") if s.strip()])
            elif command == "filter":
                column, op, value = (part.strip() for part in arg.split("|", 2))
                result = run_pipeline(registry, session)
                session.add_filter(column, op, value, columns=result.columns)
            elif command == "clear":
                session.clear_filters()
            elif command == "sort":
                sort = session.toggle_sort(arg.strip())
                print(f"Sorting by {sort.column} {sort.direction}")
            elif command == "summary":
                _print_summary(registry, session)
            elif command == "ask":
                print(f"\nAI: {asyncio.run(_ask(service, registry, session, arg, provider))}")
            elif command == "provider":
                provider = arg.strip()
            else:
                print(_HELP)
        except (AnalyticsError, ValueError) as exc:
            print(f"Error: {exc}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    run_cli()

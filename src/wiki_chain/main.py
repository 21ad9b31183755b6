import asyncio
import logging
import signal
from typing import Optional

import typer

from wiki_chain.cancellation import CancellationToken
from wiki_chain.config import SearchConfig
from wiki_chain.events import EventBus, SearchEvent
from wiki_chain.exceptions import (
    InvalidConfigError,
    PageNotFoundException,
    WikiChainException,
    WikiServiceUnavailableException,
)
from wiki_chain.search import ChainFinder
from wiki_chain.utils.wiki_helpers import article_url
from wiki_chain.wikipedia import WikiApiClient


app = typer.Typer()

EXIT_NOT_FOUND = 1
EXIT_ERROR = 2


@app.command()
def main(
    source: str = typer.Argument(..., help="Source page title or article URL."),
    target: str = typer.Argument(..., help="Target page title or article URL."),
    max_depth: Optional[int] = typer.Option(None, "--max-depth", "-d", help="Maximum depth per frontier."),
    max_nodes: Optional[int] = typer.Option(None, "--max-nodes", "-n", help="Maximum nodes explored per search."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Titles canonicalized per API request."),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", help="Re-searches allowed after failed verification."),
    no_infobox: bool = typer.Option(False, "--no-infobox", help="Ignore links inside infoboxes."),
    no_navbox: bool = typer.Option(False, "--no-navbox", help="Ignore links inside navboxes."),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Wikipedia language edition."),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."),
    plain_logs: bool = typer.Option(False, "--plain-logs", help="Plain log output instead of Rich."),
):
    """
    Find a verified chain of Wikipedia links from SOURCE to TARGET.
    """
    from wiki_chain.logging_config import setup_logging

    setup_logging(level=log_level, use_rich=not plain_logs)

    try:
        overrides = {
            "max_depth": max_depth,
            "max_nodes": max_nodes,
            "batch_size": batch_size,
            "max_retries": max_retries,
            "language": language,
        }
        if no_infobox:
            overrides["include_infobox_links"] = False
        if no_navbox:
            overrides["include_navbox_links"] = False
        config = SearchConfig.from_env(**overrides)
    except InvalidConfigError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(code=EXIT_ERROR)

    exit_code = asyncio.run(run_search_async(source, target, config))
    if exit_code:
        raise typer.Exit(code=exit_code)


async def run_search_async(source: str, target: str, config: SearchConfig) -> int:
    logger = logging.getLogger(__name__)

    cancel = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; Ctrl-C will not stop the search gracefully")

    event_bus = EventBus()

    async def on_edge_blacklisted(event: SearchEvent):
        typer.echo(f"[!] Faulty connection: {event.data['from_title']} → {event.data['to_title']}, retrying")

    event_bus.subscribe("edge_blacklisted", on_edge_blacklisted)

    try:
        async with WikiApiClient(
            language=config.language,
            user_agent=config.user_agent,
            timeout=config.request_timeout,
            page_delay=config.page_delay,
        ) as client:
            finder = ChainFinder(client, config, event_bus)
            result = await finder.find_chain(source, target, cancel)
    except (ValueError, PageNotFoundException) as e:
        typer.echo(f"Error: {e}", err=True)
        return EXIT_ERROR
    except WikiServiceUnavailableException as e:
        typer.echo(f"Error during search: {e.message}", err=True)
        return EXIT_ERROR
    except WikiChainException as e:
        logger.error(f"Search failed: {e.message}", exc_info=True)
        typer.echo(f"Error: {e.message}", err=True)
        return EXIT_ERROR
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass

    if not result.found:
        if result.cancelled:
            typer.echo("Search stopped by user.")
        else:
            typer.echo("No chain found within the given limits. Try increasing max depth or max nodes.")
        typer.echo(f"Nodes explored: {result.nodes_explored} over {result.attempts} searches")
        return EXIT_NOT_FOUND

    typer.echo(f"Chain (length {result.length}): {' -> '.join(result.chain)}")
    for title in result.chain:
        typer.echo(f"  {article_url(title, config.language)}")
    typer.echo(f"Meeting node: {result.meeting_node}")
    typer.echo(f"Nodes explored: {result.nodes_explored} over {result.attempts} searches ({result.elapsed_seconds:.1f}s)")
    return 0


if __name__ == "__main__":
    app()

"""Command-line interface for the Reddit fetch client."""

import asyncio
import dataclasses
import json
import logging
from typing import Any, List, Optional

import typer
from typing_extensions import Annotated

from reddit_fetcher.client import RedditClient
from reddit_fetcher.config import Config
from reddit_fetcher.errors import RedditClientError
from reddit_fetcher.models.things import CommentsRequest, PostsRequest
from reddit_fetcher.models.tree import CommentTree
from reddit_fetcher.utils.logging_utils import setup_logging

app = typer.Typer(help="Reddit fetcher - read posts and comment trees from the Reddit API")

logger = logging.getLogger(__name__)

ConfigOption = Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")]
EnvOption = Annotated[Optional[str], typer.Option("--env", "-e", help="Path to .env file")]
LogLevelOption = Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")]


def configure_logging(loglevel: str) -> None:
    """Set up basic logging; a logging config named in the YAML config is applied on client creation."""
    setup_logging(level=getattr(logging, loglevel.upper(), logging.INFO))


def to_json(value: Any) -> str:
    return json.dumps(dataclasses.asdict(value), indent=2, default=str)


def run(coro) -> Any:
    """Run a coroutine, turning client errors into a non-zero exit code."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        raise typer.Exit(code=130)
    except RedditClientError as e:
        logger.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


async def fetch_comments(config_path: str, env_path: Optional[str], request: CommentsRequest):
    async with RedditClient.from_files(config_path, env_path) as client:
        return await client.get_comments(request)


async def fetch_many(
    config_path: str,
    env_path: Optional[str],
    requests: List[CommentsRequest],
    timeout: Optional[float],
):
    async with RedditClient.from_files(config_path, env_path) as client:
        return await client.get_comments_multiple(requests, timeout=timeout)


async def fetch_posts(config_path: str, env_path: Optional[str], request: PostsRequest, sort: str):
    async with RedditClient.from_files(config_path, env_path) as client:
        if sort == "new":
            return await client.get_new(request)
        return await client.get_hot(request)


@app.command()
def comments(
    subreddit: Annotated[str, typer.Argument(help="Subreddit name without the r/ prefix")],
    post_id: Annotated[str, typer.Argument(help="Base36 post id")],
    config: ConfigOption = "config.yaml",
    env: EnvOption = None,
    sort: Annotated[Optional[str], typer.Option("--sort", help="Comment sort order")] = None,
    depth: Annotated[Optional[int], typer.Option("--depth", help="Maximum reply depth to request")] = None,
    limit: Annotated[int, typer.Option("--limit", help="Maximum number of comments (0 for default)")] = 0,
    summary: Annotated[bool, typer.Option("--summary", help="Print counts instead of the full tree")] = False,
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """
    Fetch a post and its comment tree and print it as JSON.
    """
    configure_logging(loglevel)
    request = CommentsRequest(subreddit, post_id, limit=limit, sort=sort, depth=depth)
    result = run(fetch_comments(config, env, request))

    if summary:
        tree = CommentTree(result.comments)
        typer.echo(json.dumps({
            "post": result.post.fullname if result.post else None,
            "comments": tree.count(),
            "depth": tree.depth(),
            "more_ids": len(result.more_ids),
        }, indent=2))
    else:
        typer.echo(to_json(result))


@app.command()
def many(
    subreddit: Annotated[str, typer.Argument(help="Subreddit name without the r/ prefix")],
    post_ids: Annotated[List[str], typer.Argument(help="Base36 post ids")],
    config: ConfigOption = "config.yaml",
    env: EnvOption = None,
    timeout: Annotated[Optional[float], typer.Option("--timeout", help="Deadline for the whole batch in seconds")] = None,
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """
    Fetch the comment trees of several posts concurrently and print one line per post.

    Exits with status 1 if any post failed.
    """
    configure_logging(loglevel)
    requests = [CommentsRequest(subreddit, post_id) for post_id in post_ids]
    result = run(fetch_many(config, env, requests, timeout))

    for post_id, item, error in zip(post_ids, result.results, result.errors):
        if error is not None:
            typer.echo(f"{post_id}\terror\t{error}")
        else:
            typer.echo(f"{post_id}\tok\t{CommentTree(item.comments).count()} comments")

    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def posts(
    subreddit: Annotated[Optional[str], typer.Argument(help="Subreddit name (front page when omitted)")] = None,
    config: ConfigOption = "config.yaml",
    env: EnvOption = None,
    sort: Annotated[str, typer.Option("--sort", help="hot or new")] = "hot",
    limit: Annotated[int, typer.Option("--limit", help="Maximum number of posts (0 for default)")] = 0,
    after: Annotated[Optional[str], typer.Option("--after", help="Fullname cursor to continue after")] = None,
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """
    List posts of a subreddit sorted by hot or new.
    """
    if sort not in ("hot", "new"):
        raise typer.BadParameter("sort must be hot or new", param_hint="--sort")
    configure_logging(loglevel)
    request = PostsRequest(subreddit=subreddit, limit=limit, after=after)
    result = run(fetch_posts(config, env, request, sort))

    for post in result.posts:
        typer.echo(f"{post.fullname}\t{post.score}\t{post.num_comments}\t{post.title}")
    if result.after:
        typer.echo(f"next: {result.after}")


@app.command("check-config")
def check_config(
    config: ConfigOption = "config.yaml",
    env: EnvOption = None,
) -> None:
    """
    Validate the configuration and environment without making any requests.
    """
    loaded = Config.from_files(config, env)
    errors = loaded.validate()
    if errors:
        for error in errors:
            typer.echo(f"Configuration error: {error}", err=True)
        raise typer.Exit(code=1)
    typer.echo("Configuration OK")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

import asyncio
import json
from typing import Optional

import typer
from loguru import logger

from config.settings import get_settings
from src.analytics.stats import monthly_return_stats
from src.dashboard.views import build_chart_view, build_dashboard_summary
from src.data.sources.fetcher import RetryingFetcher, fetch_with_retry
from src.hooks import BacktestingHook, Success, create_dashboard_hooks
from src.utils.exceptions import ConfigError, OraclePortfolioError, describe_error
from src.utils.logging import setup_logging

app = typer.Typer(no_args_is_help=True)


@app.command()
def init() -> None:
    """Create the log directory and show the resolved configuration."""
    try:
        settings = get_settings()
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        setup_logging(settings.log_level, settings.log_dir)

        typer.echo(f"Created directory: {settings.log_dir}")
        typer.echo(f"API root: {settings.api.root_url}")
        typer.echo(f"Backtesting API: {settings.api.backtesting_url}")

        if not settings.upstream.fred_api_key:
            typer.echo("FRED_API_KEY not set: functions will serve demo stress and regime data")
        if not settings.upstream.alpha_vantage_api_key:
            typer.echo("ALPHA_VANTAGE_API_KEY not set: functions will serve demo ETF prices")

        typer.echo("Oracle Portfolio initialized successfully")
        logger.info("Oracle Portfolio initialized")

    except OSError as e:
        typer.echo(f"Initialization failed: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def status() -> None:
    """Check configuration and upstream health."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.log_dir)

        if settings.fetch.max_attempts < 1:
            raise ConfigError("FETCH_MAX_ATTEMPTS must be at least 1")

        typer.echo("Oracle Portfolio Status")
        typer.echo("=" * 50)
        typer.echo(f"API root: {settings.api.root_url}")
        typer.echo(f"Fetch: {settings.fetch.max_attempts} attempts, {settings.fetch.timeout_ms}ms timeout")
        typer.echo(f"Fallbacks: {'ON' if settings.use_fallbacks else 'OFF'}")
        typer.echo(f"FRED configured: {'YES' if settings.upstream.fred_api_key else 'NO'}")
        typer.echo(f"Alpha Vantage configured: {'YES' if settings.upstream.alpha_vantage_api_key else 'NO'}")
        typer.echo("")

        async def check() -> None:
            api_status = "OFFLINE"
            try:
                health = await fetch_with_retry(
                    f"{settings.api.root_url}/getHealth",
                    max_attempts=1,
                    timeout_ms=settings.fetch.timeout_ms,
                    source="health",
                )
                if isinstance(health, dict):
                    api_status = str(health.get("status", "unknown")).upper()
            except OraclePortfolioError as e:
                logger.warning(f"API health check failed: {e}")
            typer.echo(f"API status: {api_status}")

            async with RetryingFetcher(max_attempts=1, timeout_ms=settings.fetch.timeout_ms) as fetcher:
                hook = BacktestingHook.from_settings(settings, fetcher)
                bt_health = await hook.fetch_health()
            typer.echo(f"Backtesting status: {bt_health.status.upper()} (version {bt_health.version})")

        asyncio.run(check())
        logger.info("Status check completed")

    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port for the functions server"),
) -> None:
    """Serve the HTTP functions locally."""
    from src.functions.server import run_functions_server

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    run_functions_server(settings, host=host, port=port)


@app.command()
def dashboard(
    host: Optional[str] = typer.Option(None, help="Bind address"),
    port: Optional[int] = typer.Option(None, help="Port for the web dashboard"),
    no_browser: bool = typer.Option(False, "--no-browser", help="Do not open a browser"),
) -> None:
    """Run the web dashboard."""
    from src.dashboard.web import run_web_dashboard

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    run_web_dashboard(settings, host=host, port=port, open_browser=not no_browser)


@app.command()
def snapshot(
    country: Optional[str] = typer.Option(None, help="Country code (FRA, DEU, USA, GBR)"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw summary as JSON"),
) -> None:
    """Fetch every resource once and print the panels."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)

    async def collect() -> dict:
        hooks = create_dashboard_hooks(settings, country=country)
        try:
            await hooks.start()
            return build_dashboard_summary(hooks)
        finally:
            await hooks.close()

    summary = asyncio.run(collect())

    if as_json:
        typer.echo(json.dumps(summary, indent=2))
        return

    typer.echo(f"\nOracle Portfolio snapshot ({summary['country']}, {summary['generated_at']})")
    typer.echo("=" * 80)
    for name, panel in summary["panels"].items():
        line = f"{name:<15} | {panel['status']:<8}"
        if panel["message"]:
            line += f" | {panel['message']}"
        typer.echo(line)


@app.command()
def backtest(
    country: str = typer.Option("FRA", help="Country code"),
    start_date: Optional[str] = typer.Option(None, help="Start date YYYY-MM-DD"),
    end_date: Optional[str] = typer.Option(None, help="End date YYYY-MM-DD"),
) -> None:
    """Fetch a backtesting comparison and print the headline numbers."""
    try:
        settings = get_settings()
        setup_logging(settings.log_level, settings.log_dir)

        params = {
            "country": country,
            "start_date": start_date or settings.backtest.default_start_date,
            "end_date": end_date or settings.backtest.default_end_date,
        }

        async def run() -> BacktestingHook:
            async with RetryingFetcher(
                max_attempts=settings.fetch.max_attempts, timeout_ms=settings.fetch.timeout_ms
            ) as fetcher:
                hook = BacktestingHook.from_settings(settings, fetcher, params=params)
                await hook.start()
                await hook.close()
                return hook

        hook = asyncio.run(run())

        typer.echo(
            f"\nBacktesting {hook.params['country']} "
            f"{hook.params['start_date']} -> {hook.params['end_date']}"
        )
        typer.echo("=" * 60)

        if not isinstance(hook.result, Success):
            message = describe_error(hook.error) if hook.error else "No result"
            typer.echo(f"Backtesting failed: {message}", err=True)
            raise typer.Exit(code=1)

        payload = hook.result.data
        summary = hook.summary
        chart = build_chart_view(payload)
        stats = monthly_return_stats(payload)

        typer.echo(f"Oracle return:       {summary.oracle_return}%")
        typer.echo(f"Benchmark return:    {summary.benchmark_return}%")
        typer.echo(f"Outperformance:      {summary.outperformance}%")
        if summary.reported_outperformance != "N/A":
            typer.echo(f"Reported by API:     {summary.reported_outperformance}%")
        typer.echo(f"Months:              {summary.total_months:g}")
        typer.echo(f"Chart points:        {len(chart.points)} ({chart.status})")
        typer.echo(f"Correlation:         {stats['correlation']:.3f}")
        typer.echo(f"Oracle max drawdown: {stats['oracle_max_drawdown'] * 100:.1f}%")

    except ValueError as e:
        typer.echo(f"Invalid date range: {e}", err=True)
        raise typer.Exit(code=1)
    except OraclePortfolioError as e:
        typer.echo(f"Backtest failed: {e}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

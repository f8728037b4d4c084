"""
Command-line entry point.

Run:
  filterprobe --input easylist.txt
  filterprobe --input rules.txt --driver http --concurrency 30 --format all
  filterprobe --input rules.txt --config config.json --test-count 20
"""

import argparse
import asyncio
import contextlib
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style
from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from . import __version__
from .config import OUTPUT_FORMATS, ScanConfig, load_config
from .domains import expand_with_www, filter_domains, parse_domains_from_file
from .drivers import DRIVER_NAMES, create_driver
from .errors import ConfigError
from .log import configure_logging, logger, print_header, print_status
from .models import OutcomeKind, ScanResult
from .scheduler import Scheduler
from .writers import REPORTED_KINDS, ResultWriter, summarize, write_report

SYMBOLS = {
    OutcomeKind.ACTIVE: "✓",
    OutcomeKind.DEAD: "✗",
    OutcomeKind.REDIRECT: "↪",
    OutcomeKind.INCONCLUSIVE: "?",
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="filterprobe",
        description="Probe the domains referenced by an adblock filter list and report dead, redirecting and inconclusive ones.",
    )
    parser.add_argument("--input", "-i", type=Path, help="Filter list to read domains from.")
    parser.add_argument("--config", type=Path, help="JSON configuration file.")
    parser.add_argument("--driver", choices=DRIVER_NAMES, help="Page driver: headless Chrome or plain HTTP.")
    parser.add_argument("--add-www", action="store_true", default=None, help="Also count www. variants of bare domains.")
    parser.add_argument("--ignore-similar", action="store_true", default=None, help="Treat redirects within the same base domain as active.")
    parser.add_argument("--https-only", action="store_true", default=None, help="Never fall back to plain HTTP.")
    parser.add_argument("--concurrency", type=int, help="Number of domains checked at once.")
    parser.add_argument("--timeout", type=int, help="Navigation timeout in seconds.")
    parser.add_argument("--force-abort-timeout", type=int, help="Seconds after which a hung navigation is abandoned.")
    parser.add_argument("--rate-limit", type=int, dest="max_requests_per_minute", help="Maximum navigations per minute.")
    parser.add_argument("--max-attempts", type=int, help="Maximum URL variants tried per domain.")
    parser.add_argument("--max-retries-per-error", type=int, help="Maximum attempts ending in the same error per domain.")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, dest="output_format", help="Report format.")
    parser.add_argument("--output-dir", help="Directory for report files.")
    parser.add_argument("--test-count", type=int, help="Only check the first N domains.")
    parser.add_argument("--log-file", help="Log file path.")
    parser.add_argument("--stats", action="store_true", default=None, dest="output_statistics", help="Embed run statistics in JSON reports.")
    parser.add_argument("--quiet", "-q", action="store_true", default=None, help="Only print the summary.")
    parser.add_argument("--debug", action="store_true", default=None, help="Verbose logging.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ScanConfig:
    config = load_config(args.config)
    config = config.merged(
        input_file=str(args.input) if args.input else None,
        driver=args.driver,
        add_www=args.add_www,
        ignore_similar=args.ignore_similar,
        https_only=args.https_only,
        concurrency=args.concurrency,
        timeout=args.timeout,
        force_abort_timeout=args.force_abort_timeout,
        max_requests_per_minute=args.max_requests_per_minute,
        max_attempts=args.max_attempts,
        max_retries_per_error=args.max_retries_per_error,
        output_format=args.output_format,
        output_dir=args.output_dir,
        log_file=args.log_file,
        output_statistics=args.output_statistics,
        quiet=args.quiet,
        debug=args.debug,
    )
    if args.test_count is not None:
        config = config.merged(test_mode=True, test_count=args.test_count)
    if not config.input_file:
        raise ConfigError("an input file is required (--input or 'input_file' in the config file)")
    return config.validate()


def load_domains(config: ScanConfig) -> List[str]:
    domains = parse_domains_from_file(Path(config.input_file))
    print_status(f"Found {len(domains):,} unique domains to check", "info")

    if len(domains) > config.max_domains:
        raise ConfigError(
            f"too many domains ({len(domains):,}); maximum allowed is {config.max_domains:,} "
            "(raise 'max_domains' in the config file)"
        )

    before = len(domains)
    domains = filter_domains(
        domains,
        include=config.include_domains,
        exclude=config.exclude_domains,
        exclude_patterns=config.compiled_exclude_patterns(),
    )
    if len(domains) != before:
        print_status(f"Filtered to {len(domains):,} domains (from {before:,})", "info")

    if config.test_mode and len(domains) > config.test_count:
        print_status(f"[TEST MODE] limiting to first {config.test_count} domains (from {len(domains):,} total)", "warning")
        domains = domains[: config.test_count]
    return domains


def format_result_line(result: ScanResult) -> str:
    outcome = result.outcome
    color = {
        OutcomeKind.ACTIVE: Fore.GREEN,
        OutcomeKind.DEAD: Fore.RED,
        OutcomeKind.REDIRECT: Fore.YELLOW,
        OutcomeKind.INCONCLUSIVE: Fore.MAGENTA,
    }[outcome.kind]
    if outcome.kind is OutcomeKind.REDIRECT:
        details = f"-> {outcome.final_domain} ({outcome.final_url})"
    elif outcome.reason:
        details = outcome.reason
    else:
        details = f"HTTP {outcome.status}" if outcome.status else ""
    tried = f"[{len(result.attempts)} attempt{'s' if len(result.attempts) != 1 else ''}]"
    label = outcome.kind.value.upper()
    return f"{color}{SYMBOLS[outcome.kind]} {label:<12} {result.domain}{Style.RESET_ALL} {details} {tried}".rstrip()


def progress_description(counts) -> str:
    return (
        f"{Fore.CYAN}Checking{Style.RESET_ALL} "
        f"{Fore.GREEN}(Active: {counts[OutcomeKind.ACTIVE]:,}){Style.RESET_ALL} "
        f"{Fore.RED}(Dead: {counts[OutcomeKind.DEAD]:,}){Style.RESET_ALL} "
        f"{Fore.YELLOW}(Redirect: {counts[OutcomeKind.REDIRECT]:,}){Style.RESET_ALL} "
        f"{Fore.MAGENTA}(Inconclusive: {counts[OutcomeKind.INCONCLUSIVE]:,}){Style.RESET_ALL}"
    )


def print_summary(statistics, elapsed: float) -> None:
    print_status("=" * 70, "success")
    print_status("RESULTS", "success")
    print_status("=" * 70, "success")
    print_status(f"Processing time: {elapsed:.2f} seconds", "info")
    print_status(f"Total domains checked: {statistics['totalChecked']:,}", "info")
    print_status(f"Active: {statistics['activeCount']:,}", "success")
    print_status(f"Dead: {statistics['deadCount']:,}", "error")
    print_status(f"Redirecting: {statistics['redirectCount']:,}", "warning")
    print_status(f"Inconclusive: {statistics['inconclusiveCount']:,}", "info")
    print_status("=" * 70, "success")


def report_paths(config: ScanConfig):
    return {
        OutcomeKind.DEAD: config.output_path(config.dead_domains_file),
        OutcomeKind.REDIRECT: config.output_path(config.redirect_domains_file),
        OutcomeKind.INCONCLUSIVE: config.output_path(config.inconclusive_domains_file),
    }


async def scan(config: ScanConfig) -> int:
    start_time = time.time()
    print_header(f"FILTERPROBE {__version__} - DOMAIN LIVENESS CHECK")
    print_status(f"File: {config.input_file}", "info")

    domains = load_domains(config)
    tasks = expand_with_www(domains, config.add_www)
    if config.add_www:
        total_checks = sum(len(t.variants) for t in tasks)
        with_www = sum(1 for t in tasks if len(t.variants) > 1)
        print_status(f"Expanded to {total_checks:,} total checks ({with_www:,} domains have a www variant)", "info")
    print_status(
        f"Configuration: driver={config.driver}, concurrency={config.concurrency}, "
        f"timeout={config.timeout}s, force-abort={config.force_abort_timeout}s, "
        f"rate={config.max_requests_per_minute}/min",
        "info",
    )

    paths = report_paths(config)
    realtime = config.output_format in ("text", "csv")
    writer = ResultWriter(paths) if realtime else None
    counts = {kind: 0 for kind in OutcomeKind}

    driver = create_driver(config.driver, config)
    async with driver:
        print_status(f"{driver.name} driver ready, starting domain checks...", "progress")
        if writer:
            await writer.start()
        try:
            with logging_redirect_tqdm(loggers=[logger]), tqdm(
                total=len(tasks),
                desc=progress_description(counts),
                unit="domain",
                bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]",
                colour="cyan",
                dynamic_ncols=True,
                smoothing=0.05,
                disable=config.quiet,
            ) as pbar:

                async def on_result(result: ScanResult) -> None:
                    counts[result.kind] += 1
                    if writer:
                        await writer.add(result)
                    if not config.quiet:
                        pbar.write(format_result_line(result))
                    pbar.update(1)
                    pbar.set_description(progress_description(counts))

                results = await Scheduler(driver, config, on_result).run(tasks)
        finally:
            if writer:
                await writer.stop()

    statistics = summarize(results, total=len(tasks))
    if not config.quiet:
        print_summary(statistics, time.time() - start_time)

    for kind in REPORTED_KINDS:
        if not any(r.kind is kind for r in results):
            continue
        written = write_report(
            config.output_format,
            paths[kind],
            results,
            kind,
            include_timestamp=config.include_timestamp,
            statistics=statistics if config.output_statistics else None,
        )
        if not config.quiet:
            print_status(f"{kind.value} domains written to {', '.join(str(p) for p in written)}", "info")
    if not config.quiet and statistics["redirectCount"] == 0:
        print_status("No redirecting domains found", "success")
    return 0


async def _main(config: ScanConfig) -> int:
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()
    with contextlib.suppress(NotImplementedError, AttributeError):
        loop.add_signal_handler(signal.SIGTERM, main_task.cancel)
    return await scan(config)


def run(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    configure_logging(args.log_file, debug=bool(args.debug))
    try:
        config = build_config(args)
    except ConfigError as e:
        print_status(f"Error: {e}", "error")
        return 1
    configure_logging(config.log_file, debug=config.debug)

    try:
        return asyncio.run(_main(config))
    except (KeyboardInterrupt, asyncio.CancelledError):
        print_status("Process interrupted, open pages were closed", "warning")
        return 130
    except FileNotFoundError as e:
        print_status(f"Error: {e}", "error")
        print_status("Tip: use --input=<file> to specify a different input file", "info")
        return 1
    except ConfigError as e:
        print_status(f"Error: {e}", "error")
        return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()

"""
NHS Jobs Crawler

Collects job postings from the NHS Jobs site:
- Starts from search results built from a query, or from explicit URLs
- Reads each results page (JSON API first, HTML as a fallback)
- Follows pagination up to a page ceiling
- Optionally visits every job advert for the full record
- Stops scheduling work once the wanted number of jobs is reached
"""

import argparse
import json
import logging
import math
import sys
from typing import Optional

import yaml

import crawler_config
from fetcher import PageFetcher
from frontier import FrontierController
from input_loader import CrawlInput, load_input, validate_input
from persistence.crawl_state import CrawlState
from persistence.dataset import JsonlDataset, MemoryDataset, Sink
from work_queue import WorkQueue

logger = logging.getLogger(__name__)


def run_crawl(crawl_input: CrawlInput, sink: Sink,
              fetcher: Optional[PageFetcher] = None,
              max_concurrency: int = crawler_config.MAX_CONCURRENCY) -> FrontierController:
    """
    Run a complete crawl.

    Args:
        crawl_input: What to crawl and how much
        sink: Where finished records go
        fetcher: Fetcher to use (None = a PageFetcher using the input's proxies)
        max_concurrency: Number of requests processed at the same time

    Returns:
        The controller, for its state and statistics
    """
    start_urls = crawl_input.resolve_start_urls()
    state = CrawlState(wanted=crawl_input.results_wanted, max_pages=crawl_input.max_pages)
    controller = FrontierController(
        start_urls=start_urls,
        state=state,
        sink=sink,
        collect_details=crawl_input.collect_details
    )

    own_fetcher = fetcher is None
    if own_fetcher:
        fetcher = PageFetcher(proxy_urls=crawl_input.proxy_urls)

    logger.info(f"Starting crawl with {len(start_urls)} start URLs")
    for url in start_urls:
        logger.info(f"  {url}")
    wanted = 'unlimited' if math.isinf(crawl_input.results_wanted) else crawl_input.results_wanted
    logger.info(f"Results wanted: {wanted}")
    logger.info(f"Max pages: {crawl_input.max_pages}")
    logger.info(f"Collect details: {crawl_input.collect_details}")

    queue = WorkQueue(fetcher, controller.handle, max_concurrency=max_concurrency)
    queue.enqueue(controller.initial_requests())

    try:
        queue.run()
    finally:
        if own_fetcher:
            fetcher.close()

    # Print summary
    logger.info("=" * 60)
    logger.info("Crawl complete!")
    summary = state.snapshot()
    logger.info(f"Jobs saved: {summary['saved']}")
    logger.info(f"Job URLs discovered: {summary['seen']}")
    if summary['in_flight_details']:
        logger.warning(f"Detail requests left unresolved: {summary['in_flight_details']}")
    for name, value in controller.stats.items():
        logger.info(f"{name.replace('_', ' ').capitalize()}: {value}")
    logger.info("=" * 60)

    return controller


def _build_input(args) -> CrawlInput:
    data = {}
    if args.input:
        data.update(vars(load_input(args.input)))

    overrides = {
        'keyword': args.keyword,
        'location': args.location,
        'distance': args.distance,
        'contract_type': args.contract_type,
        'working_pattern': args.working_pattern,
        'staff_group': args.staff_group,
        'pay_range': args.pay_range,
        'start_urls': args.url,
        'results_wanted': args.results_wanted,
        'max_pages': args.max_pages,
        'proxy_urls': args.proxy,
    }
    data.update({key: value for key, value in overrides.items() if value is not None})
    if args.no_details:
        data['collect_details'] = False

    return CrawlInput.from_dict(data)


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description='Collect job postings from NHS Jobs',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python job_crawler.py --keyword nurse --location Leeds --results-wanted 20
  python job_crawler.py --input inputs/example_search.yaml
  python job_crawler.py --url "https://www.jobs.nhs.uk/candidate/search/results?keyword=midwife" --no-details
  python job_crawler.py --keyword porter --max-pages 1 --dry-run
        """
    )

    parser.add_argument('--input', help='YAML or JSON input file')

    # Search query
    parser.add_argument('--keyword', help='Search keyword')
    parser.add_argument('--location', help='Town, city or postcode')
    parser.add_argument('--distance', help='Search radius in miles')
    parser.add_argument('--contract-type', help='Contract type, e.g. Permanent')
    parser.add_argument('--working-pattern', help='Working pattern, e.g. full-time')
    parser.add_argument('--staff-group', help='Staff group')
    parser.add_argument('--pay-range', help='Pay range')
    parser.add_argument('--url', action='append', help='Start URL (repeatable, replaces the query)')

    # Limits
    parser.add_argument('--results-wanted', help='Number of jobs to collect ("inf" = unlimited)')
    parser.add_argument('--max-pages', type=int, help='Maximum listing pages per start URL')
    parser.add_argument('--no-details', action='store_true',
                        help='Save listing summaries without visiting job pages')

    # Run options
    parser.add_argument('--concurrency', type=int, default=crawler_config.MAX_CONCURRENCY,
                        help='Requests processed at the same time')
    parser.add_argument('--proxy', action='append', help='Proxy URL (repeatable, rotated on retry)')
    parser.add_argument('--output', default=crawler_config.OUTPUT_FILE, help='Output JSONL file')
    parser.add_argument('--dry-run', action='store_true',
                        help='Print records instead of writing the output file')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        crawl_input = _build_input(args)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        sys.exit(1)
    except (ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(1)

    for warning in validate_input(crawl_input):
        logger.warning(warning)

    if args.dry_run:
        logger.info("DRY RUN MODE - No changes will be saved")
        sink = MemoryDataset()
    else:
        sink = JsonlDataset(args.output)

    run_crawl(crawl_input, sink, max_concurrency=args.concurrency)

    if args.dry_run:
        for record in sink.records:
            print(json.dumps(record.to_dict(), ensure_ascii=False))
    else:
        logger.info(f"Wrote {sink.count} records to {args.output}")


if __name__ == "__main__":
    main()

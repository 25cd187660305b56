#!/usr/bin/env python3
"""
Command-line listing of any list source.
Walks the cursor chain page by page and prints one JSON object per row.
"""

import sys
import asyncio
import argparse
from typing import Dict, List, Optional, TextIO

from cursorgrid.clients.authproxy_client import AuthProxyClient
from cursorgrid.config.settings import settings
from cursorgrid.core.exceptions.exceptions import DomainError
from cursorgrid.schemas.pagination import ListParams
from cursorgrid.services.list_sources import LIST_SOURCES, ListSource
from cursorgrid.services.pagination_cache import FetchPage, PaginationCache


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description='List entities by walking the API cursor chain'
    )
    parser.add_argument(
        'source', choices=sorted(LIST_SOURCES),
        help='Which list to walk'
    )
    parser.add_argument(
        '--filter', action='append', default=[], metavar='KEY=VALUE',
        help='Filter rows, e.g. --filter state=connected (repeatable)'
    )
    parser.add_argument(
        '--order', default='',
        help='Order records by the specified field. Should be of the form "field desc|asc".'
    )
    parser.add_argument(
        '--page-size', type=int, default=settings.DEFAULT_PAGE_SIZE,
        help='Rows requested per server page'
    )
    parser.add_argument(
        '--max-pages', type=int, default=None,
        help='Stop after this many pages (default: walk to the end)'
    )
    parser.add_argument(
        '--base-url', default=None,
        help='API base URL (default: API_BASE_URL setting)'
    )
    return parser.parse_args(argv)


def _split_filters(raw: List[str]) -> Dict[str, str]:
    criteria: Dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition('=')
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"filter must look like KEY=VALUE: {item!r}")
        criteria[key] = value
    return criteria


def build_params(source: ListSource, args: argparse.Namespace) -> ListParams:
    schema = source.query_schema(settings.DEFAULT_PAGE_SIZE, settings.PAGE_SIZE_OPTIONS)
    if args.page_size < 1:
        raise argparse.ArgumentTypeError(f"page size must be positive: {args.page_size}")
    return ListParams(
        filter=schema.check_filter(_split_filters(args.filter)),
        sort=schema.check_sort(args.order),
        page_size=args.page_size,
    )


async def dump(fetch: FetchPage, source: ListSource, params: ListParams,
               max_pages: Optional[int], out: TextIO, err: TextIO) -> int:
    """Walk pages 0..N through the cache and write each row as a JSON line."""
    cache = PaginationCache(fetch, params, name=source.name)
    page_index = 0
    while max_pages is None or page_index < max_pages:
        await cache.fetch_page(page_index)
        view = cache.view
        if view.error:
            err.write(f"error: {view.error}\n")
            return 1
        for row in view.rows:
            out.write(row.model_dump_json() + '\n')
        if not view.has_next_page:
            break
        page_index += 1

    view = cache.view
    total = view.row_count if view.row_count >= 0 else 'unknown'
    err.write(f"{len(cache.pages)} page(s), {total} row(s) total\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    source = LIST_SOURCES[args.source]
    try:
        params = build_params(source, args)
    except (DomainError, argparse.ArgumentTypeError) as e:
        sys.stderr.write(f"usage error: {getattr(e, 'message', e)}\n")
        return 2

    client = AuthProxyClient(base_url=args.base_url)
    try:
        return asyncio.run(dump(source.fetcher(client), source, params, args.max_pages,
                                sys.stdout, sys.stderr))
    finally:
        client.close()


if __name__ == '__main__':
    sys.exit(main())

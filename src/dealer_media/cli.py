"""
Command-line interface for the media publish pipeline.

Examples:
  dealer-media list-pages
  dealer-media publish --page-id 123 --page-token TOKEN --text "Just arrived!" \\
      --image photo1.jpg --image photo2.png --owner-scope dealership-12
  dealer-media publish --dry-run --page-id 987654321 --page-token mock --text "Test"
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .capture import SelectedFile
from .config import PipelineConfig
from .errors import DealerMediaError
from .logging_setup import configure_logging
from .models import MediaAsset, Platform, PublishRequest
from .pipeline import MediaPipeline

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog='dealer-media',
        description='Upload dealership photos and publish them to social pages',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:" + __doc__.split('Examples:', 1)[1]
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Use the simulated platform even when credentials are configured'
    )
    parser.add_argument(
        '--env-file',
        metavar='PATH',
        help='Load environment variables from this .env file'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    pages = subparsers.add_parser('list-pages', help='List pages the configured user can publish to')
    pages.add_argument('--token', help='User access token (default: FACEBOOK_ACCESS_TOKEN)')

    publish = subparsers.add_parser('publish', help='Upload images and publish a post')
    publish.add_argument('--page-id', required=True, help='Target page id')
    publish.add_argument('--page-token', required=True, help='Page access token')
    publish.add_argument('--text', required=True, help='Post text')
    publish.add_argument(
        '--image',
        action='append',
        default=[],
        metavar='PATH',
        help='Image file to attach (repeatable)'
    )
    publish.add_argument(
        '--owner-scope',
        default='default',
        help='Tenant/dealership namespace for stored images (default: default)'
    )
    publish.add_argument(
        '--platform',
        default=Platform.FACEBOOK.value,
        choices=[p.value for p in Platform],
        help='Destination platform (default: facebook)'
    )

    return parser.parse_args(argv)


async def _list_pages(pipeline: MediaPipeline, config: PipelineConfig, token: Optional[str]) -> int:
    pages = await pipeline.list_pages(token or config.facebook_access_token or "mock_token")
    if not pages:
        print("No pages found")
        return 1
    for page in pages:
        category = f" [{page.category}]" if page.category else ""
        print(f"{page.id}\t{page.name}{category}")
    return 0


async def _publish(pipeline: MediaPipeline, args: argparse.Namespace) -> int:
    assets: List[MediaAsset] = []
    try:
        for image_path in args.image:
            path = Path(image_path)
            if not path.is_file():
                logger.error(f"Image not found: {path}")
                continue
            selected = SelectedFile(name=path.name, data=path.read_bytes())
            asset = await pipeline.capture(args.owner_scope, selected_file=selected)
            if asset is not None:
                assets.append(asset)

        request = PublishRequest(
            text=args.text,
            target_platform=Platform.from_string(args.platform),
            target_account_id=args.page_id,
            target_account_credential=args.page_token,
            assets=assets,
        )
        result = await pipeline.publish(request)
    finally:
        pipeline.teardown()

    if result.success:
        print(f"Published {result.mode.value} post: {result.platform_post_id}")
        if result.skipped_assets:
            print(f"Skipped {len(result.skipped_assets)} image(s) without a durable URL")
        return 0

    print(f"Publish failed: {result.error_message}", file=sys.stderr)
    return 1


async def run(args: argparse.Namespace) -> int:
    config = PipelineConfig.from_env(args.env_file)
    configure_logging(config.log_level, config.log_file)
    pipeline = MediaPipeline.from_config(config, force_simulated=args.dry_run)

    if args.command == 'list-pages':
        return await _list_pages(pipeline, config, args.token)
    return await _publish(pipeline, args)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    try:
        return asyncio.run(run(args))
    except (ValueError, DealerMediaError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())

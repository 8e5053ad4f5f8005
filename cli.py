#!/usr/bin/env python3
"""
Command Line Interface for Resale Analyzer
"""

import click
import json
import logging

from config import Config, create_sample_env
from resale_pricing import DATA_SOURCES, DATA_SOURCE_EXACT, ItemIdentification, MarketSnapshot
from resale_pricing.exceptions import ResaleAnalyzerError
from resale_pricing.market_research import get_snapshot_provider
from resale_pricing.price_stats import analyze_price_distribution, remove_outliers
from resale_pricing.pricing_engine import calculate_suggested_price, get_pricing_summary
from resale_analyzer import ResaleAnalyzer


class ListingCountType(click.ParamType):
    """Non-negative listing count, or N/A when the marketplace did not report one"""

    name = 'count'

    def convert(self, value, param, ctx):
        if value is None or isinstance(value, int):
            return value
        if str(value).strip().upper() in ('N/A', 'NA'):
            return None
        try:
            count = int(value)
        except ValueError:
            self.fail(f"{value!r} is not a whole number or N/A", param, ctx)
        if count < 0:
            self.fail(f"{value!r} is negative", param, ctx)
        return count


LISTING_COUNT = ListingCountType()


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """Resale Analyzer - Photo-based item identification and resale pricing"""
    ctx.ensure_object(dict)

    config = Config()
    ctx.obj['config'] = config

    # Setup logging
    log_level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(config.log_file)
        ]
    )


@cli.command()
@click.argument('images', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--condition', '-c', default='good', help='Item condition (new, like new, good, fair, poor, ...)')
@click.option('--json', 'as_json', is_flag=True, help='Print the full result as JSON')
@click.pass_context
def analyze(ctx, images, condition, as_json):
    """Identify an item from photos and suggest a resale price"""
    config = ctx.obj['config']

    if not config.validate():
        click.echo("❌ Configuration validation failed. Please check your .env file.")
        ctx.exit(1)

    try:
        result = ResaleAnalyzer(config).analyze(list(images), condition)
    except ResaleAnalyzerError as exc:
        click.echo(f"❌ Analysis failed: {exc}")
        ctx.exit(1)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    identification = result['identification']
    sales = result['salesData']
    pricing = result['pricing']

    click.echo(f"🔍 Item: {identification['item']} ({identification['confidenceLevel']} match, "
               f"{identification['matchConfidence']:.0%})")
    click.echo(f"📊 Sold: {sales['soldLast90Days']}  Active: {sales['activeListings']}  "
               f"Source: {sales['dataSource']}")
    if sales['sourceNote']:
        click.echo(f"   {sales['sourceNote']}")

    if pricing['suggestedPrice'] is None:
        click.echo("❌ Not enough market data to suggest a price")
    else:
        click.echo(f"💰 Suggested: ${pricing['suggestedPrice']:.2f}  "
                   f"Quick sale: ${pricing['quickSalePrice']:.2f}  "
                   f"Premium: ${pricing['premiumPrice']:.2f}  ({pricing['priceConfidence']} confidence)")

    for step in pricing['methodology']:
        click.echo(f"  • {step}")

    for note in result['extras']['dataQualityNotes']:
        click.echo(f"⚠️  {note}")


@cli.command()
@click.option('--brand', required=True, help='Item brand')
@click.option('--model', default=None, help='Item model')
@click.option('--name', default=None, help='Full item name (defaults to brand + model)')
@click.option('--category', default='General', help='Item category')
@click.option('--condition', '-c', default='good', help='Item condition')
@click.option('--json', 'as_json', is_flag=True, help='Print the snapshot and pricing as JSON')
@click.pass_context
def search(ctx, brand, model, name, category, condition, as_json):
    """Fetch market data for an item without photos and price it"""
    config = ctx.obj['config']

    item = ItemIdentification(
        item_name=name or ' '.join(part for part in (brand, model) if part),
        brand=brand,
        model=model,
        category=category
    )

    try:
        provider = get_snapshot_provider(config)
    except ResaleAnalyzerError as exc:
        click.echo(f"❌ {exc}")
        ctx.exit(1)

    snapshot = provider.fetch_market_snapshot(item, condition)
    pricing = calculate_suggested_price(snapshot)

    if as_json:
        click.echo(json.dumps({'snapshot': snapshot.to_dict(), 'pricing': pricing.to_dict()}, indent=2))
        return

    if snapshot.error:
        click.echo(f"⚠️  {snapshot.error}")
    click.echo(get_pricing_summary(pricing, snapshot))


@cli.command()
@click.option('--sold-count', type=LISTING_COUNT, default=0, help='Number of sold listings, or N/A if unknown')
@click.option('--active-count', type=LISTING_COUNT, default=0, help='Number of active listings, or N/A if unknown')
@click.option('--avg-sold', type=float, default=0.0, help='Average sold price')
@click.option('--avg-active', type=float, default=0.0, help='Average active listing price')
@click.option('--data-source', type=click.Choice(DATA_SOURCES), default=DATA_SOURCE_EXACT,
              help='Data source tier of the numbers')
@click.option('--json', 'as_json', is_flag=True, help='Print the recommendation as JSON')
def price(sold_count, active_count, avg_sold, avg_active, data_source, as_json):
    """Calculate a price recommendation from known market numbers"""
    snapshot = MarketSnapshot(
        sold_count=sold_count,
        active_count=active_count,
        avg_sold_price=avg_sold,
        avg_active_price=avg_active,
        data_source=data_source
    )
    pricing = calculate_suggested_price(snapshot)

    if as_json:
        click.echo(json.dumps(pricing.to_dict(), indent=2))
    else:
        click.echo(get_pricing_summary(pricing, snapshot))


@cli.command()
@click.argument('prices', nargs=-1, required=True, type=float)
def stats(prices):
    """Show distribution statistics and outliers for a list of prices"""
    outliers = remove_outliers(prices)
    distribution = analyze_price_distribution(outliers.filtered)

    click.echo(f"📊 {len(prices)} prices, {outliers.outlier_count} outlier(s) removed")
    click.echo(f"  Median:  ${distribution.median:.2f}")
    click.echo(f"  Mode:    ${distribution.mode}")
    click.echo(f"  Mean:    ${distribution.mean:.2f}")
    click.echo(f"  Std dev: ${distribution.std_dev:.2f}")


@cli.command()
@click.pass_context
def config_info(ctx):
    """Display current configuration"""
    config = ctx.obj['config']

    click.echo("⚙️  Current Configuration:")
    for key, value in config.to_dict().items():
        click.echo(f"  {key}: {value}")


@cli.command()
@click.option('--path', default='.env', help='Where to write the sample file')
def setup(path):
    """Create a sample .env file"""
    if create_sample_env(path):
        click.echo(f"✅ Sample configuration written to {path}")
        click.echo("📝 Please update it with your API keys")
    else:
        click.echo(f"ℹ️  {path} already exists - leaving it unchanged")


if __name__ == '__main__':
    cli()

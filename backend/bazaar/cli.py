# Overview: Flask CLI command groups for inspecting and operating the offer and auction stores.

# backend/bazaar/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# NOTE: with the default in-memory database every CLI invocation sees a fresh,
# empty store. Point DATABASE_URL at a shared database to inspect a running
# server's state.
#
# Auction:
# - python -m flask auction status
#   Show the active auction, its bid count and the current high bid.
# - python -m flask auction end --yes
#   End the active auction as the system operator and print the winner.
#
# Offers:
# - python -m flask offers list [--user USER_ID]
#   List offer records, optionally only those a user takes part in.
# - python -m flask offers purge LISTING_ID --yes
#   MANUAL CLEANUP ONLY: delete the offer record of one listing, e.g. after the
#   listing was removed upstream. Removing a listing does NOT cascade to its
#   offer, and no API route deletes offers.
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .gateway import Actor
from .services.registry import get_services


# Operations run from the command line act as this operator
CLI_OPERATOR = Actor(id="cli-operator", email_verified=True, scopes=frozenset({"operator"}))


@click.group('auction')
def auction_group():
    """Auction slot inspection and control."""


@auction_group.command('status')
@with_appcontext
def auction_status():
    """Show the active auction."""
    view = get_services().auctions.current_auction()
    auction = view["auction"]
    if auction is None:
        click.echo("No active auction.")
        return

    bids = view["bids"]
    click.echo("\n" + "=" * 60)
    click.echo(f"Auction:   {auction['auctionId']}  (listing {auction['listingId']})")
    click.echo(f"Title:     {auction['title'] or '-'}")
    click.echo(f"Window:    {auction['startTimeISO']} -> {auction['endTimeISO']}")
    click.echo(f"Start bid: {auction['startingBid']}   Increment: {auction['minIncrement']}   "
               f"Reserve: {auction['reservePrice'] if auction['reservePrice'] is not None else '-'}")
    click.echo(f"Bids:      {len(bids)} shown")
    if bids:
        click.echo(f"High bid:  {bids[-1]['amount']} by {bids[-1]['bidder']}")
    click.echo("=" * 60 + "\n")


@auction_group.command('end')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def auction_end(yes):
    """End the active auction and print the winning bid."""
    if not yes:
        click.confirm("WARN This ends the auction and discards its bid ledger. Continue?", abort=True)

    result = get_services().auctions.end(CLI_OPERATOR)
    if result["auction"] is None:
        click.echo("No active auction.")
        return

    winner = result["winner"]
    if winner:
        click.echo(f"PASS Auction {result['auction']['auctionId']} ended. "
                   f"Winner: {winner['userId']} with {winner['amount']}")
    else:
        click.echo(f"PASS Auction {result['auction']['auctionId']} ended with no bids.")


@click.group('offers')
def offers_group():
    """Offer record inspection and cleanup."""


@offers_group.command('list')
@click.option('--user', 'user_id', default=None, help='Only offers where this user is buyer or seller')
@with_appcontext
def list_offers(user_id):
    """List offer records, most recently updated first."""
    store = get_services().offers.store
    offers = store.for_participant(user_id) if user_id else store.all()

    if not offers:
        click.echo("No offers found.")
        return

    click.echo("\n" + "=" * 100)
    click.echo(f"{'Listing':<20} {'Status':<18} {'Buyer':<16} {'Seller':<16} {'Offer':>8} {'Counter':>8}  Updated")
    click.echo("=" * 100)
    for offer in offers:
        row = offer.to_dict()
        counter = row['counterPrice'] if row['counterPrice'] is not None else '-'
        click.echo(f"{row['listingId']:<20} {row['status']:<18} {row['buyerId']:<16} {row['sellerId']:<16} "
                   f"{row['offerPrice']:>8} {counter:>8}  {row['updatedAt']}")
    click.echo("=" * 100 + "\n")


@offers_group.command('purge')
@click.argument('listing_id')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def purge_offer(listing_id, yes):
    """
    Delete the offer record stored for LISTING_ID.

    Manual cleanup stopgap. Listing removal does not cascade to offers and no
    API route deletes them; run this by hand when a stale record must go.
    """
    if not yes:
        click.confirm(f"WARN Delete the offer record for listing {listing_id}?", abort=True)

    services = get_services()
    with services.locks.hold("offer", listing_id), services.offers.store.unit_of_work() as store:
        deleted = store.delete(listing_id)

    if deleted:
        current_app.logger.info("Offer record for listing %s purged from the CLI", listing_id)
        click.echo(f"PASS Deleted offer record for listing {listing_id}")
    else:
        click.echo(f"WARN No offer record for listing {listing_id}")


@click.group('system')
def system_group():
    """System maintenance commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL offers, auctions, bids and likes!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(auction_group)
    app.cli.add_command(offers_group)
    app.cli.add_command(system_group)

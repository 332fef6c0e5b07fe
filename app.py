"""
LifeLink - Blood Donation Management System
Flask application: operator command line and read-only JSON API
Tracks donors, blood requests, per-unit inventory and donation camps
"""

from datetime import date
from functools import wraps
from pathlib import Path

import click
from flask import Blueprint, Flask, current_app, g, jsonify
from flask.cli import AppGroup, FlaskGroup, with_appcontext

from lifelink import config
from lifelink.bank import BloodBank
from lifelink.compatibility import (
    BLOOD_GROUPS,
    compatible_donor_groups,
    compatible_recipient_groups,
)
from lifelink.dates import parse_date
from lifelink.eligibility import eligibility_issues, next_eligible_date
from lifelink.errors import LifeLinkError, NotFoundError, ValidationError
from lifelink.logger import setup_logger
from lifelink.matching import request_sort_key
from lifelink.registry import PRIORITIES, get_camp, get_donor, get_request, search_donors
from lifelink.reports import fulfillment_ratio, top_donors

# ============== HELPER FUNCTIONS ==============

def get_bank():
    """Blood bank for the current app context, loaded from the data directory"""
    if 'bank' not in g:
        g.bank = BloodBank(
            current_app.config['DATA_DIR'],
            current_app.config['CERTIFICATE_DIR'],
        ).load_all()
    return g.bank


def today():
    """Operating date: TODAY from config when set, otherwise the system date"""
    return parse_date(current_app.config.get('TODAY')) or date.today()


def handle_errors(command):
    """Report registry errors as CLI errors (non-zero exit, nothing saved)"""
    @wraps(command)
    def _wrapped(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except LifeLinkError as e:
            raise click.ClickException(str(e)) from e
    return _wrapped


def format_donor(donor):
    return (f"{donor['donor_id']} | {donor['name']} | {donor['blood_group']} | "
            f"Age:{donor['age']} | Wt:{donor['weight']:g} | "
            f"Last:{donor.get('last_donation') or '-'} | Total:{donor.get('total_donations', 0)}")


def format_request(request):
    return (f"{request['request_id']} | {request['patient_name']} | {request['blood_group']} | "
            f"x{request['units_needed']} | {request['priority']} | {request['created_at']} | "
            f"{request['status']}"
            + (f" ({request['fulfilled_date']})" if request.get('fulfilled_date') else ''))


def echo_outcomes(outcomes):
    messages = {
        'inventory': 'fulfilled from inventory',
        'donors': 'fulfilled via matched donors',
        'partial': 'partially matched, still pending',
        'no_donors': 'no eligible donors, still pending',
    }
    for outcome in outcomes:
        line = f"Request {outcome['request_id']}: {messages[outcome['outcome']]}"
        if outcome['donors']:
            line += f" (donors: {', '.join(outcome['donors'])})"
        click.echo(line)


# ============== DONOR COMMANDS ==============

donor_cli = AppGroup('donor', help='Donor registration, eligibility and donations.')


@donor_cli.command('register')
@click.option('--name', prompt='Enter name')
@click.option('--age', type=int, prompt='Enter age')
@click.option('--weight', type=float, prompt='Enter weight (kg)')
@click.option('--blood-group', prompt='Enter blood group (e.g., A+)')
@click.option('--contact', default='')
@click.option('--address', default='')
@click.option('--last-donation', default='', help='Date of last donation (YYYY-MM-DD), if any.')
@handle_errors
def donor_register(name, age, weight, blood_group, contact, address, last_donation):
    """Register a new donor"""
    donor = get_bank().register_donor(
        name=name, age=age, weight=weight, blood_group=blood_group,
        contact=contact, address=address, last_donation=last_donation or None,
    )
    click.echo(f"Donor registered with ID: {donor['donor_id']}")


@donor_cli.command('list')
def donor_list():
    """List all donors"""
    donors = get_bank().donors
    click.echo(f'-- Donors ({len(donors)}) --')
    for donor in donors.values():
        click.echo(format_donor(donor))


@donor_cli.command('show')
@click.argument('donor_id')
@handle_errors
def donor_show(donor_id):
    """Show a donor's profile and when they can next donate"""
    donor = get_donor(get_bank().donors, donor_id)
    click.echo(format_donor(donor))
    click.echo(f"Contact: {donor.get('contact') or '-'} | Address: {donor.get('address') or '-'}")
    click.echo(f"Can donate to: {', '.join(compatible_recipient_groups(donor['blood_group']))}")
    click.echo(f'Next eligible: {next_eligible_date(donor, today()).isoformat()}')


@donor_cli.command('eligibility')
@click.argument('donor_id')
@handle_errors
def donor_eligibility(donor_id):
    """Check whether a donor may donate today"""
    donor = get_donor(get_bank().donors, donor_id)
    issues = eligibility_issues(donor, today())
    if not issues:
        click.echo('Eligible')
        return
    click.echo('Not eligible')
    for issue in issues:
        click.echo(f'  - {issue}')
    click.echo(f'Next eligible: {next_eligible_date(donor, today()).isoformat()}')


@donor_cli.command('donate')
@click.argument('donor_id')
@handle_errors
def donor_donate(donor_id):
    """Record a donation of one unit"""
    unit = get_bank().donate(donor_id, today())
    click.echo(f"Donation recorded. 1 unit of {unit['blood_group']} added to inventory "
               f"(expires {unit['expiry_date']}).")


@donor_cli.command('update')
@click.argument('donor_id')
@click.option('--contact')
@click.option('--address')
@click.option('--age', type=int)
@click.option('--weight', type=float)
@handle_errors
def donor_update(donor_id, contact, address, age, weight):
    """Update donor information"""
    donor = get_bank().update_donor(donor_id, contact=contact, address=address, age=age, weight=weight)
    click.echo('Profile updated successfully!')
    click.echo(format_donor(donor))


@donor_cli.command('search')
@click.option('--blood-group')
@click.option('--eligible/--all', 'eligible_only', default=True,
              help='Only donors who may donate today (default).')
@handle_errors
def donor_search(blood_group, eligible_only):
    """Search for donors by blood group"""
    results = search_donors(get_bank().donors, blood_group, today(), eligible_only)
    if not results:
        click.echo('No donors found.')
    for donor in results:
        click.echo(format_donor(donor))


# ============== REQUEST COMMANDS ==============

request_cli = AppGroup('request', help='Blood requests for patients.')


@request_cli.command('create')
@click.option('--patient', 'patient_name', prompt='Patient name')
@click.option('--blood-group', prompt='Required blood group')
@click.option('--units', 'units_needed', type=int, prompt='Units needed')
@click.option('--priority', type=click.Choice(PRIORITIES, case_sensitive=False), default='normal',
              show_default=True)
@click.option('--emergency', is_flag=True, help='Shortcut for --priority critical.')
@handle_errors
def request_create(patient_name, blood_group, units_needed, priority, emergency):
    """Create blood request and try to match it right away"""
    if emergency:
        priority = 'critical'
    request, outcomes = get_bank().create_request(
        today(), patient_name=patient_name, blood_group=blood_group,
        units_needed=units_needed, priority=priority,
    )
    click.echo(f"Request created: {request['request_id']}")
    echo_outcomes(outcomes)


@request_cli.command('list')
@click.option('--status', type=click.Choice(['pending', 'fulfilled']))
def request_list(status):
    """List requests in processing order"""
    click.echo('-- Requests --')
    for request in sorted(get_bank().requests.values(), key=request_sort_key):
        if status and request['status'] != status:
            continue
        click.echo(format_request(request))


@request_cli.command('status')
@click.argument('request_id')
@handle_errors
def request_status(request_id):
    """Check the status of a request"""
    click.echo(format_request(get_request(get_bank().requests, request_id)))


# ============== INVENTORY COMMANDS ==============

inventory_cli = AppGroup('inventory', help='Blood stock per unit and group.')


@inventory_cli.command('show')
def inventory_show():
    """Inventory summary by blood group"""
    bank = get_bank()
    bank.prune_expired(today())
    threshold = current_app.config['LOW_STOCK_THRESHOLD']
    click.echo('-- Inventory Summary --')
    for blood_group, count in bank.inventory.summary(today()).items():
        click.echo(f'{blood_group} : {count}' + ('  <-- LOW' if count < threshold else ''))


@inventory_cli.command('add')
@click.option('--blood-group', prompt='Blood group')
@click.option('--units', type=int, default=1, show_default=True)
@click.option('--collected', help='Collection date (YYYY-MM-DD), default today.')
@handle_errors
def inventory_add(blood_group, units, collected):
    """Add units to stock manually"""
    added = get_bank().add_stock(blood_group, collected or today(), units)
    click.echo(f"{len(added)} unit(s) added to inventory for {added[0]['blood_group']}")


@inventory_cli.command('prune')
def inventory_prune():
    """Remove expired units"""
    removed = get_bank().prune_expired(today())
    click.echo(f'{removed} expired unit(s) removed.')


@inventory_cli.command('low-stock')
def inventory_low_stock():
    """Low stock alerts"""
    threshold = current_app.config['LOW_STOCK_THRESHOLD']
    low = get_bank().inventory.low_stock(today(), threshold)
    if not low:
        click.echo('All blood groups are adequately stocked.')
    for blood_group, count in low.items():
        click.echo(f'{blood_group} low: {count}')


# ============== MATCHING & REPORTS ==============

@click.command('match')
@with_appcontext
def match_command():
    """Match pending requests against stock and eligible donors"""
    outcomes = get_bank().match(today())
    if not outcomes:
        click.echo('No pending requests.')
    echo_outcomes(outcomes)


@click.command('report')
@with_appcontext
def report_command():
    """Top donors, blood distribution and request fulfilment"""
    bank = get_bank()
    click.echo('--- Reports ---')
    click.echo('Top donors:')
    for donor in top_donors(bank.donors, current_app.config['TOP_DONORS']):
        click.echo(f"{donor['donor_id']}:{donor['name']} -> {donor['total_donations']} donations")
    click.echo('Blood distribution:')
    for blood_group, count in bank.inventory.summary(today()).items():
        click.echo(f'{blood_group}: {count}')
    fulfilled, total = fulfillment_ratio(bank.requests)
    click.echo(f'Requests fulfilled: {fulfilled}/{total}')


# ============== CAMP COMMANDS ==============

camp_cli = AppGroup('camp', help='Donation camps.')


@camp_cli.command('create')
@click.option('--date', 'camp_date', prompt='Camp date (YYYY-MM-DD)')
@click.option('--location', prompt='Location')
@click.option('--organizer', prompt='Organizer')
@handle_errors
def camp_create(camp_date, location, organizer):
    """Create a donation camp"""
    camp = get_bank().create_camp(camp_date, location, organizer)
    click.echo(f"Camp created: {camp['camp_id']} at {camp['location']} on {camp['date']}")


@camp_cli.command('register-donor')
@click.argument('camp_id')
@click.argument('donor_id')
@handle_errors
def camp_register_donor(camp_id, donor_id):
    """Register a donor to a camp"""
    get_bank().register_donor_to_camp(camp_id, donor_id)
    click.echo('Donor registered to camp.')


@camp_cli.command('donate')
@click.argument('camp_id')
@click.argument('donor_id')
@handle_errors
def camp_donate(camp_id, donor_id):
    """Record a donation collected at a camp"""
    unit = get_bank().camp_donation(camp_id, donor_id, today())
    camp = get_camp(get_bank().camps, camp_id)
    click.echo(f"Donation recorded at {camp['camp_id']}: 1 unit of {unit['blood_group']} "
               f"(camp total {camp['units_collected']}).")


@camp_cli.command('list')
def camp_list():
    """List donation camps"""
    for camp in get_bank().camps.values():
        click.echo(f"{camp['camp_id']} | {camp['date']} | {camp['location']} | "
                   f"regs:{len(camp['registered_donors'])} units:{camp['units_collected']}")


# ============== API ROUTES ==============

api = Blueprint('api', __name__, url_prefix='/api')


@api.errorhandler(NotFoundError)
def not_found(e):
    return jsonify({'success': False, 'message': str(e)}), 404


@api.errorhandler(ValidationError)
def bad_request(e):
    return jsonify({'success': False, 'message': str(e)}), 400


@api.route('/statistics')
def api_statistics():
    """API endpoint for statistics"""
    stats = get_bank().statistics(
        today(),
        low_stock_threshold=current_app.config['LOW_STOCK_THRESHOLD'],
        top=current_app.config['TOP_DONORS'],
    )
    return jsonify(stats)


@api.route('/donors')
def api_donors():
    """API endpoint for donors"""
    return jsonify(list(get_bank().donors.values()))


@api.route('/donors/<donor_id>/eligibility')
def api_donor_eligibility(donor_id):
    donor = get_donor(get_bank().donors, donor_id)
    issues = eligibility_issues(donor, today())
    return jsonify({
        'donor_id': donor['donor_id'],
        'eligible': not issues,
        'issues': issues,
        'next_eligible_date': next_eligible_date(donor, today()).isoformat(),
        'can_donate_to': compatible_recipient_groups(donor['blood_group']),
    })


@api.route('/requests')
def api_requests():
    """API endpoint for blood requests"""
    return jsonify(list(get_bank().requests.values()))


@api.route('/requests/<request_id>')
def api_request(request_id):
    return jsonify(get_request(get_bank().requests, request_id))


@api.route('/inventory')
def api_inventory():
    """
    Inventory per blood group with compatibility info.
    Only units within their shelf life are counted.
    """
    threshold = current_app.config['LOW_STOCK_THRESHOLD']
    summary = get_bank().inventory.summary(today())
    inventory_data = {}
    for blood_group in BLOOD_GROUPS:
        units = summary[blood_group]
        inventory_data[blood_group] = {
            'units': units,
            'can_donate_to': compatible_recipient_groups(blood_group),
            'can_receive_from': compatible_donor_groups(blood_group),
            'status': 'low' if units < threshold else 'adequate',
        }
    return jsonify({
        'success': True,
        'date': today().isoformat(),
        'inventory': inventory_data,
        'total_units': sum(summary.values()),
        'critical_groups': [bg for bg, n in summary.items() if n < threshold],
    })


@api.route('/camps')
def api_camps():
    return jsonify(list(get_bank().camps.values()))


# ============== APPLICATION FACTORY ==============

def create_app(test_config=None):
    """Flask application factory"""
    app = Flask(__name__)
    app.config.from_mapping(config.as_mapping())
    if test_config:
        app.config.update(test_config)
        if 'DATA_DIR' in test_config and 'CERTIFICATE_DIR' not in test_config:
            app.config['CERTIFICATE_DIR'] = Path(test_config['DATA_DIR']) / 'certificates'

    setup_logger(level=app.config['LOG_LEVEL'], log_file=app.config['LOG_FILE'])

    app.register_blueprint(api)
    for command in (donor_cli, request_cli, inventory_cli, camp_cli, match_command, report_command):
        app.cli.add_command(command)

    return app


cli = FlaskGroup(create_app=create_app, help='LifeLink blood bank operator console.')

# ============== MAIN ==============

if __name__ == '__main__':
    cli()

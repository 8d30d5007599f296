# =============================================================================
# PlantCare AI Backend
# routes/plants.py - Plant Encyclopedia Routes
#
# Read-only access to the bundled plant encyclopedia: listing, lookup,
# search, categories, seasonal suggestions and a random "plant of the day".
# =============================================================================

from flask import Blueprint, request, current_app

from plantcare.extensions import limiter
from plantcare.services.insights_service import parse_month
from plantcare.utils import success_response, error_response
from plantcare.decorators import handle_service_errors

# Create blueprint
plants_bp = Blueprint('plants', __name__)


def _database():
    return current_app.config['PLANT_DATABASE']


@plants_bp.route('/', methods=['GET'])
@limiter.limit("100 per minute")
def get_all_plants():
    """
    List plants, optionally filtered.

    Query:
        category (str): vegetable, fruit, flower, herb, tree, grain
        q (str): Text search over names, description and uses

    Returns:
        200: {"plants": [...], "total": n}
    """
    database = _database()
    category = request.args.get('category')
    query = request.args.get('q')

    if query:
        plants = database.search(query)
    else:
        plants = database.all()
    if category:
        plants = [p for p in plants if p['category'] == category.lower()]

    return success_response({'plants': plants, 'total': len(plants)})


@plants_bp.route('/categories', methods=['GET'])
def get_categories():
    database = _database()
    counts = {c: len(database.by_category(c)) for c in database.categories()}
    return success_response({'categories': database.categories(), 'counts': counts})


@plants_bp.route('/search', methods=['GET'])
@limiter.limit("100 per minute")
def search_plants():
    query = request.args.get('q', '')
    plants = _database().search(query)
    return success_response({'query': query, 'plants': plants, 'total': len(plants)})


@plants_bp.route('/category/<category>', methods=['GET'])
def get_by_category(category):
    database = _database()
    if category.lower() not in database.categories():
        return error_response(
            'Unknown category',
            details={'available_categories': database.categories()},
            status_code=404
        )
    plants = database.by_category(category)
    return success_response({'category': category.lower(), 'plants': plants, 'total': len(plants)})


@plants_bp.route('/seasonal', methods=['GET'])
@handle_service_errors
def get_seasonal():
    """Plants to grow in the given month (default: current month)."""
    month = request.args.get('month')
    month_number = parse_month(month) if month else None
    plants = _database().seasonal(month_number)
    return success_response({'month': month_number, 'plants': plants, 'total': len(plants)})


@plants_bp.route('/random', methods=['GET'])
def get_random_plant():
    plant = _database().random_plant()
    if plant is None:
        return error_response('No plants available', status_code=404)
    return success_response(plant)


@plants_bp.route('/<plant_id>', methods=['GET'])
def get_plant(plant_id):
    """
    Get a single plant by id.

    Returns:
        200: Plant details
        404: Unknown plant id
    """
    plant = _database().get(plant_id)
    if plant is None:
        return error_response(
            'Plant not found',
            details=f"No plant with id '{plant_id}'",
            status_code=404
        )
    return success_response(plant)

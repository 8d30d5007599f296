# =============================================================================
# PlantCare AI Backend
# routes/places.py - Nearby Places Routes
#
# Search for nurseries, agricultural shops and similar places around a
# location, and driving routes to a selected place.
# =============================================================================

from flask import Blueprint, request, current_app

from plantcare.extensions import limiter
from plantcare.utils import success_response, error_response, parse_location
from plantcare.decorators import handle_service_errors

# Create blueprint
places_bp = Blueprint('places', __name__)


@places_bp.route('/search', methods=['GET'])
@limiter.limit("20 per minute")
@handle_service_errors
def search_places():
    """
    Places matching a query, nearest first.

    Query:
        q (str): e.g. 'nursery', 'fertilizer' - required
        lat, lng (float): Origin - optional, defaults to Bengaluru
        radius (float): Search radius in km - optional
        category (str): Category label for the results - optional

    Returns:
        200: {"places": [...], "total": n}
        502: All map providers failed
    """
    query = request.args.get('q', '').strip()
    if not query:
        return error_response('Query parameter q is required', status_code=400)

    origin = parse_location(request.args)
    radius = float(request.args.get('radius', current_app.config['PLACE_SEARCH_RADIUS_KM']))
    if radius <= 0:
        raise ValueError("radius must be positive")

    places = current_app.config['PLACE_PROVIDER'].search(
        query, origin, radius_km=radius, category=request.args.get('category')
    )
    current_app.logger.info(f"Place search '{query}': {len(places)} results")

    return success_response({
        'query': query,
        'origin': list(origin),
        'radius_km': radius,
        'places': [p.to_dict() for p in places],
        'total': len(places)
    })


@places_bp.route('/route', methods=['GET'])
@limiter.limit("20 per minute")
@handle_service_errors
def get_route():
    """
    Driving route from the origin to a destination.

    Query:
        lat, lng (float): Origin - optional, defaults to Bengaluru
        dest_lat, dest_lng (float): Destination - required
    """
    if request.args.get('dest_lat') is None or request.args.get('dest_lng') is None:
        return error_response('dest_lat and dest_lng are required', status_code=400)

    origin = parse_location(request.args)
    destination = parse_location(request.args, 'dest_lat', 'dest_lng')
    route = current_app.config['ROUTE_SERVICE'].route(origin, destination)
    return success_response(route)

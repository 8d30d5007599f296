# =============================================================================
# PlantCare AI Backend
# services/plant_database.py - Plant Encyclopedia
#
# Read-only, in-memory plant records for the Karnataka encyclopedia,
# loaded once from data/plants.json. Supports category filter, free-text
# search, id lookup, random pick, seasonal filter and district lookup.
# =============================================================================

import re
import json
import random
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Set

from plantcare.constants import (
    PLANT_CATEGORIES,
    MONSOON_MONTHS,
    WINTER_MONTHS,
    MONTH_NAMES
)

logger = logging.getLogger(__name__)

DATA_FILE = Path(__file__).resolve().parent.parent / 'data' / 'plants.json'

SEARCH_FIELDS = ('name', 'scientific_name', 'description')

# Season keywords used by the encyclopedia's "in season now" filter
MONSOON_KEYWORDS = ('June', 'July')
WINTER_KEYWORDS = ('October', 'November', 'February')

# Regions that apply to every district
STATEWIDE_REGIONS = ('entire karnataka', 'every home')

# Current and older district names
DISTRICT_ALIASES = {
    'bengaluru': 'bangalore',
    'bangalore': 'bengaluru',
    'mysuru': 'mysore',
    'mysore': 'mysuru',
    'belagavi': 'belgaum',
    'belgaum': 'belagavi',
    'shivamogga': 'shimoga',
    'shimoga': 'shivamogga',
    'kalaburagi': 'gulbarga',
    'gulbarga': 'kalaburagi',
    'ballari': 'bellary',
    'bellary': 'ballari',
    'tumakuru': 'tumkur',
    'tumkur': 'tumakuru',
    'vijayapura': 'bijapur',
    'bijapur': 'vijayapura'
}

_MONTH_PATTERN = re.compile(r'\b(' + '|'.join(MONTH_NAMES) + r')\b')


def season_months(season: str) -> Set[int]:
    """
    Months covered by a growing-season string.

    'October-February' -> {10, 11, 12, 1, 2}, 'Year-round ...' -> all months,
    a lone month name -> that month.
    """
    if 'year-round' in season.lower():
        return set(range(1, 13))

    months = [MONTH_NAMES.index(m) + 1 for m in _MONTH_PATTERN.findall(season)]
    if len(months) >= 2 and '-' in season:
        start, end = months[0], months[1]
        span = (end - start) % 12
        return {(start - 1 + i) % 12 + 1 for i in range(span + 1)}
    return set(months)


def _district_tokens(district: str) -> Set[str]:
    """'Mysuru (Mysore)' -> {'mysuru', 'mysore'}"""
    tokens = {t for t in re.split(r'[\s()]+', district.lower()) if t and t not in ('rural', 'urban')}
    return tokens | {DISTRICT_ALIASES[t] for t in tokens if t in DISTRICT_ALIASES}


class PlantDatabase:
    """
    In-memory plant encyclopedia.

    Args:
        plants: List of plant dicts (loaded from DATA_FILE when None)
    """

    def __init__(self, plants: Optional[List[Dict]] = None):
        if plants is None:
            plants = self.load(DATA_FILE)
        self._plants = list(plants)
        self._by_id = {plant['id']: plant for plant in self._plants}

    @staticmethod
    def load(path) -> List[Dict]:
        with open(path, 'r', encoding='utf-8') as f:
            plants = json.load(f)
        logger.info(f"Loaded {len(plants)} plants from {path}")
        return plants

    def __len__(self):
        return len(self._plants)

    def all(self) -> List[Dict]:
        return list(self._plants)

    def categories(self) -> List[str]:
        return list(PLANT_CATEGORIES)

    def by_category(self, category: str) -> List[Dict]:
        category = (category or '').lower()
        return [p for p in self._plants if p['category'] == category]

    def get(self, plant_id: str) -> Optional[Dict]:
        return self._by_id.get(plant_id)

    def random_plant(self, rng: Optional[random.Random] = None) -> Optional[Dict]:
        if not self._plants:
            return None
        return (rng or random).choice(self._plants)

    def search(self, query: str) -> List[Dict]:
        """Case-insensitive substring search over names, description and uses."""
        query = (query or '').strip().lower()
        if not query:
            return self.all()

        results = []
        for plant in self._plants:
            fields = [plant.get(f, '') for f in SEARCH_FIELDS] + plant.get('common_uses', [])
            if any(query in value.lower() for value in fields):
                results.append(plant)
        return results

    def seasonal(self, month: Optional[int] = None) -> List[Dict]:
        """
        Plants to grow now.

        Monsoon (Jun-Sep): seasons mentioning June or July. Winter (Oct-Feb):
        seasons mentioning October, November or February. Summer: all plants.
        """
        month = month or date.today().month

        if month in MONSOON_MONTHS:
            keywords = MONSOON_KEYWORDS
        elif month in WINTER_MONTHS:
            keywords = WINTER_KEYWORDS
        else:
            return self.all()

        return [
            p for p in self._plants
            if any(k in season for season in p.get('growing_seasons', []) for k in keywords)
        ]

    def in_season(self, plant: Dict, month: int) -> bool:
        """Whether any growing season of the plant covers the month."""
        return any(month in season_months(s) for s in plant.get('growing_seasons', []))

    def for_district(self, district: str) -> List[Dict]:
        """Plants grown in a Karnataka district (name or alias)."""
        tokens = _district_tokens(district or '')
        if not tokens:
            return []

        results = []
        for plant in self._plants:
            for region in plant.get('karnataka_regions', []):
                region_lower = region.lower()
                if any(r in region_lower for r in STATEWIDE_REGIONS) or \
                        tokens & _district_tokens(region):
                    results.append(plant)
                    break
        return results


_database = None


def get_plant_database() -> PlantDatabase:
    """Shared database instance (loaded on first use)."""
    global _database
    if _database is None:
        _database = PlantDatabase()
    return _database

"""
Rule-based crop & fertilizer recommender
Maps a soil reading (pH, N, P, K) to crops, an NPK mix and a soil health status
"""
import copy
import math

# Used for any field the farmer leaves blank
DEFAULT_SOIL_VALUES = {
    'ph': 6.5,
    'nitrogen': 0.8,
    'phosphorus': 0.15,
    'potassium': 0.9,
}

FALLBACK_RESULT = {
    'recommended_crops': [
        {'name': 'Mixed Vegetables', 'suitability': 75, 'expected_yield': '15-20 tons/hectare'}
    ],
    'fertilizer_recommendation': {
        'npk_ratio': '10-10-10',
        'quantity': '200 kg/hectare',
        'estimated_cost': '$150',
    },
    'soil_health': {
        'status': 'Needs Analysis',
        'improvements': ['Get detailed soil test', 'Monitor nutrient levels'],
    },
}

HARDY_VEGETABLES = {'name': 'Hardy Vegetables', 'suitability': 70, 'expected_yield': '10-15 tons/hectare'}

MAX_CROPS = 3


def round_half_up(value):
    # round() sends halves to the even neighbour; yields, quantities and costs round halves up
    return int(math.floor(value + 0.5))


def normalize_soil_reading(soil_data=None):
    """Fill every missing (or None) soil value with its default."""
    soil_data = soil_data or {}
    normalized = {}
    for field, default in DEFAULT_SOIL_VALUES.items():
        value = soil_data.get(field)
        normalized[field] = default if value is None else float(value)
    return normalized


def assess_soil_health(soil):
    ph = soil['ph']
    status = 'Good'
    improvements = []

    if ph < 6.0:
        status = 'Acidic'
        improvements.append('Apply lime to increase pH')
    elif ph > 7.5:
        status = 'Alkaline'
        improvements.append('Apply sulfur to decrease pH')

    if soil['nitrogen'] < 0.5:
        improvements.append('Increase nitrogen with organic compost')
    if soil['phosphorus'] < 0.1:
        improvements.append('Add phosphate fertilizer')
    if soil['potassium'] < 0.8:
        improvements.append('Apply potassium-rich fertilizer')

    if not improvements:
        improvements = ['Maintain current nutrient balance', 'Regular soil testing recommended']

    return {'status': status, 'improvements': improvements}


# (name, conditional, predicate, scorer, yield in tons/hectare), evaluated in this order
CROP_RULES = [
    (
        'Tomato', True,
        lambda s: 6.0 <= s['ph'] <= 7.0 and s['nitrogen'] >= 0.6,
        lambda s: 60 + s['nitrogen'] * 30 + (7 - abs(s['ph'] - 6.5)) * 5,
        lambda s: 20 + s['nitrogen'] * 10,
    ),
    (
        # Tolerates a wide pH range and low nutrients
        'Lettuce', False,
        lambda s: True,
        lambda s: 70 + s['phosphorus'] * 100 + (8 - abs(s['ph'] - 6.8)) * 3,
        lambda s: 12 + s['phosphorus'] * 20,
    ),
    (
        'Pepper', True,
        lambda s: s['potassium'] >= 0.7,
        lambda s: 65 + s['potassium'] * 25 + (7.5 - abs(s['ph'] - 6.8)) * 4,
        lambda s: 15 + s['potassium'] * 8,
    ),
]


def recommend_crops(soil):
    """
    Evaluate CROP_RULES in order and return at most MAX_CROPS suggestions.
    Hardy Vegetables is appended when no conditional crop qualifies.
    The list is kept in rule order, not sorted by suitability.
    """
    crops = []
    conditional_matches = 0

    for name, conditional, predicate, scorer, crop_yield in CROP_RULES:
        if not predicate(soil):
            continue
        if conditional:
            conditional_matches += 1
        crops.append({
            'name': name,
            'suitability': round(min(95, scorer(soil)), 2),
            'expected_yield': f"{round_half_up(crop_yield(soil))} tons/hectare",
        })

    if conditional_matches == 0:
        crops.append(dict(HARDY_VEGETABLES))

    return crops[:MAX_CROPS]


def recommend_fertilizer(soil):
    n_ratio = p_ratio = k_ratio = 10

    # Order matters: the tighter threshold is checked last and overwrites
    if soil['nitrogen'] < 0.8:
        n_ratio = 15
    if soil['nitrogen'] < 0.5:
        n_ratio = 20

    if soil['phosphorus'] < 0.15:
        p_ratio = 15
    if soil['phosphorus'] < 0.1:
        p_ratio = 20

    if soil['potassium'] < 0.9:
        k_ratio = 15
    if soil['potassium'] < 0.7:
        k_ratio = 20

    total = n_ratio + p_ratio + k_ratio
    return {
        'npk_ratio': f"{n_ratio}-{p_ratio}-{k_ratio}",
        'quantity': f"{round_half_up(150 + total * 3)} kg/hectare",
        'estimated_cost': f"${round_half_up(total * 2.5 + 100)}",
    }


def generate_recommendations(soil_data=None):
    """
    Full analysis for one soil reading.
    Missing values are defaulted first, so any (even empty) reading
    yields crops, a fertilizer plan and a soil health assessment.
    """
    soil = normalize_soil_reading(soil_data)
    return {
        'recommended_crops': recommend_crops(soil),
        'fertilizer_recommendation': recommend_fertilizer(soil),
        'soil_health': assess_soil_health(soil),
    }


def fallback_result():
    return copy.deepcopy(FALLBACK_RESULT)

import pytest

from recommender import (
    FALLBACK_RESULT,
    assess_soil_health,
    fallback_result,
    generate_recommendations,
    normalize_soil_reading,
    recommend_fertilizer,
    round_half_up,
)


def crop_names(result):
    return [crop['name'] for crop in result['recommended_crops']]


def test_normalize_fills_missing_values():
    soil = normalize_soil_reading({'ph': 5.2, 'nitrogen': None})
    assert soil == {'ph': 5.2, 'nitrogen': 0.8, 'phosphorus': 0.15, 'potassium': 0.9}


def test_normalize_keeps_explicit_zero():
    soil = normalize_soil_reading({'nitrogen': 0, 'potassium': 0})
    assert soil['nitrogen'] == 0
    assert soil['potassium'] == 0


def test_normalize_ignores_location():
    assert 'location' not in normalize_soil_reading({'location': 'Pune'})


def test_empty_reading_uses_defaults():
    result = generate_recommendations({})

    assert crop_names(result) == ['Tomato', 'Lettuce', 'Pepper']
    lettuce = result['recommended_crops'][1]
    assert lettuce['suitability'] == 95
    assert lettuce['expected_yield'] == '15 tons/hectare'

    fertilizer = result['fertilizer_recommendation']
    assert fertilizer == {
        'npk_ratio': '10-10-10',
        'quantity': '240 kg/hectare',
        'estimated_cost': '$175',
    }
    assert result['soil_health'] == {
        'status': 'Good',
        'improvements': ['Maintain current nutrient balance', 'Regular soil testing recommended'],
    }


def test_none_reading_is_same_as_empty():
    assert generate_recommendations(None) == generate_recommendations({})


def test_acidic_soil():
    health = generate_recommendations({'ph': 5.5})['soil_health']
    assert health['status'] == 'Acidic'
    assert 'Apply lime to increase pH' in health['improvements']


def test_alkaline_soil():
    health = generate_recommendations({'ph': 8.0})['soil_health']
    assert health['status'] == 'Alkaline'
    assert 'Apply sulfur to decrease pH' in health['improvements']


def test_nutrient_advisories_accumulate_in_order():
    soil = normalize_soil_reading({'ph': 5.0, 'nitrogen': 0.3, 'phosphorus': 0.05, 'potassium': 0.5})
    assert assess_soil_health(soil)['improvements'] == [
        'Apply lime to increase pH',
        'Increase nitrogen with organic compost',
        'Add phosphate fertilizer',
        'Apply potassium-rich fertilizer',
    ]


def test_boundary_ph_is_good():
    assert generate_recommendations({'ph': 6.0})['soil_health']['status'] == 'Good'
    assert generate_recommendations({'ph': 7.5})['soil_health']['status'] == 'Good'


def test_tomato_included_for_rich_neutral_soil():
    result = generate_recommendations({'nitrogen': 0.9, 'ph': 6.5})
    tomato = result['recommended_crops'][0]
    assert tomato['name'] == 'Tomato'
    assert tomato['suitability'] == 95
    assert tomato['expected_yield'] == '29 tons/hectare'


def test_tomato_excluded_outside_ph_window():
    assert 'Tomato' not in crop_names(generate_recommendations({'ph': 7.1}))
    assert 'Tomato' not in crop_names(generate_recommendations({'nitrogen': 0.59}))


def test_low_potassium_excludes_pepper_and_escalates_k():
    result = generate_recommendations({'potassium': 0.5})
    assert 'Pepper' not in crop_names(result)
    assert result['fertilizer_recommendation']['npk_ratio'] == '10-10-20'
    assert result['fertilizer_recommendation']['quantity'] == '270 kg/hectare'
    assert result['fertilizer_recommendation']['estimated_cost'] == '$200'


def test_no_qualifying_crop_adds_hardy_vegetables():
    result = generate_recommendations({'ph': 9, 'nitrogen': 0, 'potassium': 0})
    hardy = [crop for crop in result['recommended_crops'] if crop['name'] == 'Hardy Vegetables']
    assert len(hardy) == 1
    assert hardy[0]['suitability'] == 70
    assert hardy[0]['expected_yield'] == '10-15 tons/hectare'
    assert crop_names(result) == ['Lettuce', 'Hardy Vegetables']
    assert result['fertilizer_recommendation']['npk_ratio'] == '20-10-20'


def test_crops_keep_rule_order_not_score_order():
    result = generate_recommendations({'ph': 13, 'potassium': 2})
    lettuce, pepper = result['recommended_crops']
    assert (lettuce['name'], pepper['name']) == ('Lettuce', 'Pepper')
    assert lettuce['suitability'] == pytest.approx(90.4)
    assert pepper['suitability'] == 95


def test_scores_below_cap():
    result = generate_recommendations({'ph': 9, 'phosphorus': 0.05})
    lettuce = result['recommended_crops'][0]
    assert lettuce['suitability'] == pytest.approx(92.4)
    assert lettuce['expected_yield'] == '13 tons/hectare'

    pepper = generate_recommendations({'ph': 13, 'potassium': 0.7})['recommended_crops'][1]
    assert pepper['suitability'] == pytest.approx(87.7)


@pytest.mark.parametrize('soil', [
    {},
    {'ph': 0},
    {'ph': 14, 'nitrogen': 10, 'phosphorus': 5, 'potassium': 8},
    {'ph': 6.5, 'nitrogen': 0.6, 'potassium': 0.7},
    {'ph': 9, 'nitrogen': 0, 'phosphorus': 0, 'potassium': 0},
])
def test_crop_count_between_one_and_three(soil):
    crops = generate_recommendations(soil)['recommended_crops']
    assert 1 <= len(crops) <= 3
    assert all(0 <= crop['suitability'] <= 100 for crop in crops)


def test_tighter_threshold_wins():
    soil = normalize_soil_reading({'nitrogen': 0.4, 'phosphorus': 0.12, 'potassium': 0.8})
    assert recommend_fertilizer(soil)['npk_ratio'] == '20-15-15'


def test_half_values_round_up():
    fertilizer = generate_recommendations({'nitrogen': 0.7})['fertilizer_recommendation']
    assert fertilizer['npk_ratio'] == '15-10-10'
    assert fertilizer['quantity'] == '255 kg/hectare'
    assert fertilizer['estimated_cost'] == '$188'

    assert round_half_up(212.5) == 213
    assert round_half_up(22.2) == 22


def test_fallback_result_is_a_copy():
    result = fallback_result()
    assert result == FALLBACK_RESULT
    assert result['soil_health']['status'] == 'Needs Analysis'
    assert [crop['name'] for crop in result['recommended_crops']] == ['Mixed Vegetables']

    result['recommended_crops'].clear()
    assert FALLBACK_RESULT['recommended_crops']


def test_low_phosphorus_escalates_p():
    fertilizer = generate_recommendations({'phosphorus': 0.05})['fertilizer_recommendation']
    assert fertilizer['npk_ratio'] == '10-20-10'
    assert fertilizer['quantity'] == '270 kg/hectare'
    assert fertilizer['estimated_cost'] == '$200'

    assert generate_recommendations({'phosphorus': 0.1})['fertilizer_recommendation']['npk_ratio'] == '10-15-10'


@pytest.mark.parametrize('soil', [
    {'ph': 6.0},
    {'ph': 7.0},
    {'nitrogen': 0.6},
])
def test_tomato_window_is_inclusive(soil):
    assert 'Tomato' in crop_names(generate_recommendations(soil))

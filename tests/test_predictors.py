import pytest

from branch_sim.errors import ConfigError
from branch_sim.predictors import (
    BimodalPredictor,
    GSharePredictor,
    PredictorConfig,
    YAGSPredictor,
    create_predictor,
)


# Bimodal

def test_bimodal_learns_direction():
    predictor = BimodalPredictor({'table_size': 16})
    assert predictor.predict(0x40).prediction is True

    predictor.update(0x40, 0, False)
    result = predictor.predict(0x40)
    assert result.prediction is False
    assert result.counter_state == 1
    assert result.predictor_used == "Bimodal"


def test_bimodal_ignores_history():
    predictor = BimodalPredictor({'table_size': 16})
    predictor.update(0x40, 0b1011, False)
    assert predictor.predict(0x40, 0).prediction is False
    assert predictor.predict(0x40, 0b1111).prediction is False
    assert predictor.history_length == 0


def test_bimodal_aliasing_and_address_shift():
    aliased = BimodalPredictor({'table_size': 4})
    aliased.update(0x0, 0, False)
    assert aliased.predict(0x10).prediction is False

    shifted = BimodalPredictor({'table_size': 4, 'address_shift': 2})
    shifted.update(0x0, 0, False)
    assert shifted.predict(0x4).prediction is True


def test_bimodal_bit_budget():
    predictor = BimodalPredictor({'table_size': 4096})
    assert predictor.bit_budget() == 8192
    cost = predictor.get_hardware_cost()
    assert cost['table_entries'] == 4096
    assert cost['total_kb'] == 1.0


# GShare

def test_gshare_separates_histories():
    predictor = GSharePredictor({'table_size': 16, 'history_length': 4})
    predictor.update(0x0, 0b0001, False)
    predictor.update(0x0, 0b0001, False)

    assert predictor.predict(0x0, 0b0001).prediction is False
    assert predictor.predict(0x0, 0b0000).prediction is True


def test_gshare_masks_history_to_its_width():
    predictor = GSharePredictor({'table_size': 256, 'history_length': 2})
    predictor.update(0x0, 0b11, False)
    # bits above the configured width are ignored
    assert predictor.predict(0x0, 0b111111).prediction is False


def test_gshare_bit_budget_excludes_history():
    predictor = GSharePredictor({'table_size': 4096, 'history_length': 12})
    cost = predictor.get_hardware_cost()
    assert cost['total_bits'] == 8192
    assert cost['history_bits'] == 12


# YAGS

def make_yags(**overrides):
    settings = {'table_size': 16, 'cache_size': 16, 'tag_bits': 4,
                'history_length': 4}
    settings.update(overrides)
    return YAGSPredictor(settings)


def test_yags_uses_base_until_an_exception_is_seen():
    predictor = make_yags()
    result = predictor.predict(0x20, 0b0011)
    assert result.prediction is True
    assert result.predictor_used == "Base"


def test_yags_records_and_uses_exception():
    predictor = make_yags()
    pc, history = 0x20, 0b0011

    # Strengthen the base toward taken in another context
    predictor.update(pc, 0, True)
    assert predictor.base.state(0) == 3

    # Base wrong, not-taken cache misses: allocate
    predictor.update(pc, history, False)
    assert predictor.not_taken_cache.allocations == 1
    assert predictor.base.state(0) == 2

    result = predictor.predict(pc, history)
    assert result.prediction is False
    assert result.predictor_used == "NotTakenCache"

    # Exception right, base wrong: base keeps its bias, entry is trained
    predictor.update(pc, history, False, result)
    assert predictor.base.state(0) == 2
    assert predictor.not_taken_cache.counters.state(3) == 0

    # Other history contexts still follow the base
    assert predictor.predict(pc, 0).prediction is True


def test_yags_no_allocation_when_base_is_right():
    predictor = make_yags()
    for history in range(16):
        predictor.update(0x20, history, True)
    assert predictor.taken_cache.allocations == 0
    assert predictor.not_taken_cache.allocations == 0


def test_yags_correct_base_leaves_matching_entry_alone():
    predictor = make_yags()
    pc, history = 0x20, 0b0011
    predictor.update(pc, 0, True)
    predictor.update(pc, history, False)
    assert predictor.not_taken_cache.counters.state(3) == 1

    # Base says taken and is right; the matching exception is not trained
    predictor.update(pc, history, True)
    assert predictor.not_taken_cache.counters.state(3) == 1
    assert predictor.not_taken_cache.hit(3, 2)
    assert predictor.not_taken_cache.allocations == 1
    assert predictor.base.state(0) == 3


def test_yags_taken_cache_for_not_taken_bias():
    predictor = make_yags()
    pc = 0x20
    predictor.update(pc, 0, False)
    predictor.update(pc, 0, False)
    assert predictor.base.predict(0) is False

    predictor.update(pc, 0b0101, True)
    assert predictor.taken_cache.allocations == 1

    result = predictor.predict(pc, 0b0101)
    assert result.prediction is True
    assert result.predictor_used == "TakenCache"


def test_yags_zero_history_never_touches_caches():
    predictor = make_yags(history_length=0)
    for i in range(100):
        predictor.update(0x20, 0, i % 3 == 0)
        predictor.predict(0x20, 0)

    stats = predictor.get_cache_statistics()
    assert stats['taken_cache']['lookups'] == 0
    assert stats['taken_cache']['allocations'] == 0
    assert stats['not_taken_cache']['allocations'] == 0


def test_yags_bit_budget():
    predictor = YAGSPredictor()
    # 4096 * 2 + 2 * 1024 * (2 + 6 + 1)
    assert predictor.bit_budget() == 26624
    assert predictor.get_hardware_cost()['cache_bits_per_entry'] == 9


def test_yags_reset():
    predictor = make_yags()
    predictor.update(0x20, 0b0011, False)
    predictor.reset()
    assert predictor.base.state(0) == 2
    assert predictor.not_taken_cache.get_statistics()['valid_entries'] == 0


# Configuration and factory

def test_create_predictor_variants():
    assert isinstance(create_predictor({'variant': 'bimodal'}), BimodalPredictor)
    assert isinstance(create_predictor(PredictorConfig('gshare')), GSharePredictor)
    assert isinstance(create_predictor({'variant': 'YAGS'}), YAGSPredictor)


def test_labels():
    assert PredictorConfig('bimodal').label() == 'bimodal-4096'
    assert PredictorConfig('gshare').label() == 'gshare-4096-h12'
    assert PredictorConfig('yags').label() == 'yags-4096-c1024-t6-h12'
    assert PredictorConfig('yags', name='mine').label() == 'mine'


def test_parameters_only_list_relevant_settings():
    assert PredictorConfig('bimodal', table_size=512).parameters() == {'table_size': 512}
    assert PredictorConfig('gshare', address_shift=2).parameters() == {
        'table_size': 4096, 'history_length': 12, 'address_shift': 2}


def test_predictor_takes_its_own_variant():
    predictor = GSharePredictor(PredictorConfig('yags', table_size=64))
    assert predictor.config.variant == 'gshare'
    assert predictor.table_size == 64


@pytest.mark.parametrize("settings", [
    {'variant': 'gshare', 'table_size': 1000},
    {'variant': 'bimodal', 'table_size': 0},
    {'variant': 'yags', 'cache_size': 3},
    {'variant': 'gshare', 'history_length': -1},
    {'variant': 'yags', 'tag_bits': -1},
    {'variant': 'bimodal', 'counter_bits': 0},
    {'variant': 'gshare', 'address_shift': -1},
    {'variant': 'tage'},
    {'variant': 'gshare', 'foo': 1},
    {'variant': 'gshare', 'table_size': '4096'},
])
def test_invalid_configuration(settings):
    with pytest.raises(ConfigError):
        create_predictor(settings)

import pytest
import yaml

from branch_sim.errors import ConfigError
from branch_sim.predictors import PredictorConfig
from branch_sim.simulation import aggregate_by_variant, expand_grid, load_sweep, run_sweep


def test_expand_grid_is_cartesian_product():
    configs = expand_grid({'variant': 'gshare', 'table_size': [1024, 4096],
                           'history_length': [8, 12]})
    assert [(c.table_size, c.history_length) for c in configs] == [
        (1024, 8), (1024, 12), (4096, 8), (4096, 12)]
    assert all(c.variant == 'gshare' for c in configs)


def test_expand_grid_scalar_entry():
    assert expand_grid({'variant': 'bimodal'}) == [PredictorConfig('bimodal')]


@pytest.mark.parametrize("entry", [
    {'variant': 'gshare', 'table_size': []},
    {'variant': 'gshare', 'size': [1, 2]},
    ['gshare'],
])
def test_expand_grid_rejects_bad_entries(entry):
    with pytest.raises(ConfigError):
        expand_grid(entry)


def write_sweep(tmp_path, data):
    path = tmp_path / "sweep.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_load_sweep(tmp_path):
    path = write_sweep(tmp_path, {
        'trace': 'traces/a.txt',
        'warmup': 100,
        'predictors': [
            {'variant': 'bimodal', 'table_size': [256, 512]},
            {'variant': 'yags', 'history_length': [4, 8, 12]},
        ],
    })
    sweep = load_sweep(path)
    assert sweep['trace'] == 'traces/a.txt'
    assert sweep['warmup'] == 100
    assert sweep['max_branches'] is None
    assert len(sweep['configs']) == 5


@pytest.mark.parametrize("data", [
    {'predictors': []},
    {'trace': 'a.txt'},
    {'predictors': [{'variant': 'gshare'}], 'threads': 4},
    {'predictors': [{'variant': 'gshare'}], 'warmup': -1},
    {'predictors': [{'variant': 'gshare'}], 'workers': 0},
])
def test_load_sweep_rejects_bad_files(tmp_path, data):
    with pytest.raises(ConfigError):
        load_sweep(write_sweep(tmp_path, data))


def test_run_sweep_in_process(text_trace_file):
    configs = expand_grid({'variant': 'gshare', 'table_size': [256, 1024],
                           'history_length': 8})
    configs.append(PredictorConfig('bimodal', table_size=256))

    results = run_sweep(text_trace_file, configs, warmup=100, num_workers=1)
    runs = results['runs']

    assert [r['name'] for r in runs] == ['gshare-256-h8', 'gshare-1024-h8',
                                         'bimodal-256']
    assert all(r['success'] for r in runs)
    assert all(r['total'] == 1900 for r in runs)
    assert [r['total_bits'] for r in runs] == [512, 2048, 512]


def test_run_sweep_parallel_matches_in_process(text_trace_file):
    configs = expand_grid({'variant': 'yags', 'table_size': [256, 512],
                           'cache_size': 64, 'history_length': [6, 10]})

    serial = run_sweep(text_trace_file, configs, num_workers=1)['runs']
    parallel = run_sweep(text_trace_file, configs, num_workers=2)['runs']

    key = ('name', 'mispredictions', 'total', 'total_bits')
    assert [{k: r[k] for k in key} for r in serial] == \
        [{k: r[k] for k in key} for r in parallel]


def test_failed_run_is_reported(tmp_path):
    results = run_sweep(tmp_path / "missing.txt", [PredictorConfig('bimodal')],
                        num_workers=1)
    run = results['runs'][0]
    assert run['success'] is False
    assert 'FileNotFoundError' in run['error']
    assert run['error_type'] == 'FileNotFoundError'
    assert 'mispredictions' not in run


def test_invalid_config_fails_before_running(text_trace_file):
    with pytest.raises(ConfigError):
        run_sweep(text_trace_file, [PredictorConfig('gshare', table_size=100)])
    with pytest.raises(ConfigError):
        run_sweep(text_trace_file, [])


def test_aggregate_by_variant():
    sweep = {'runs': [
        {'name': 'g1', 'variant': 'gshare', 'success': True,
         'misprediction_rate': 0.2, 'mispredictions': 20, 'total_bits': 512},
        {'name': 'g2', 'variant': 'gshare', 'success': True,
         'misprediction_rate': 0.1, 'mispredictions': 10, 'total_bits': 2048},
        {'name': 'y1', 'variant': 'yags', 'success': False, 'error': 'boom'},
    ]}
    aggregated = aggregate_by_variant(sweep)

    assert list(aggregated) == ['gshare']
    assert aggregated['gshare']['best'] == 'g2'
    assert aggregated['gshare']['avg_misprediction_rate'] == pytest.approx(0.15)
    assert aggregated['gshare']['std_misprediction_rate'] == pytest.approx(0.05)

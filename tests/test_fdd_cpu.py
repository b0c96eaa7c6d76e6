import numpy as np
import pytest

from dedisp.errors import DedispError, ErrorCode
from dedisp.fdd_cpu import FDDCPUPlan, generate_spin_frequency_table, segment_layout

ENV_VARS = ("USE_SEGMENTED", "USE_REFERENCE", "USE_SEGMENTED_KERNEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _random_input(nsamp, nchan, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(nsamp, nchan), dtype=np.uint8)


def _plan(nchan=32, dms=(0.0, 0.5, 2.0), max_delay=4, seed=1):
    rng = np.random.default_rng(seed)
    delays = rng.uniform(0.0, 2.0, size=nchan).astype(np.float32)
    return FDDCPUPlan(nchan, 1e-3, list(dms), delays, max_delay)


def test_spin_frequency_table_spacing():
    table = generate_spin_frequency_table(10, 100, 0.01)
    assert table.shape == (10,)
    assert table[0] == 0.0
    np.testing.assert_allclose(table * 100 * 0.01, np.arange(10), rtol=1e-5)


def test_segment_layout_small_delay():
    layout = segment_layout(1000, 0)
    assert layout.nfft == 16384
    assert layout.nsamp_good == layout.nfft - layout.nsamp_dm
    assert layout.nchunk == 1
    assert layout.nfreq_chunk == layout.nfft // 2 + 1
    assert layout.nfreq_chunk_padded % 1024 == 0
    assert layout.nfreq_chunk_padded > layout.nfreq_chunk
    assert layout.nsamp_padded == layout.nchunk * 2 * layout.nfreq_chunk_padded


def test_segment_layout_grows_fft_for_large_delay():
    layout = segment_layout(100000, 4000)
    assert layout.nsamp_dm == 4000
    assert layout.nfft * 0.2 >= 4000
    assert (layout.nfft // 2) * 0.2 < 4000
    assert (layout.nchunk - 1) * layout.nsamp_good < 100000 <= layout.nchunk * layout.nsamp_good


def test_delay_table_length_mismatch():
    with pytest.raises(ValueError):
        FDDCPUPlan(4, 1e-3, [0.0], [0.0, 1.0], 1)


def test_too_few_samples():
    plan = _plan(max_delay=10)
    with pytest.raises(DedispError) as info:
        plan.execute(5, bytes(5 * 32), 8, 32, 0)
    assert info.value.code == ErrorCode.TOO_FEW_NSAMPS


def test_no_dm_list():
    plan = FDDCPUPlan(32, 1e-3, [], np.zeros(32), 0)
    with pytest.raises(DedispError) as info:
        plan.execute(16, bytes(16 * 32), 8, 32, 0)
    assert info.value.code == ErrorCode.NO_DM_LIST_SET


def test_input_too_small():
    plan = _plan()
    with pytest.raises(ValueError):
        plan.execute(64, bytes(10), 8, 32, 0)


def test_optimized_needs_channel_multiple():
    plan = _plan(nchan=4)
    with pytest.raises(ValueError):
        plan.execute(16, _random_input(16, 4).tobytes(), 8, 32, 0)


def test_reference_handles_any_channel_count(monkeypatch):
    monkeypatch.setenv("USE_REFERENCE", "1")
    plan = _plan(nchan=4)
    out = plan.execute(16, _random_input(16, 4).tobytes(), 8, 32, 0)
    assert out.shape == (3, 12)
    assert out.dtype == np.float32


def test_reference_matches_optimized(monkeypatch):
    data = _random_input(64, 32).tobytes()
    optimized = _plan().execute(64, data, 8, 32, 0)
    monkeypatch.setenv("USE_REFERENCE", "1")
    reference = _plan().execute(64, data, 8, 32, 0)
    assert optimized.shape == (3, 60)
    np.testing.assert_allclose(optimized, reference, rtol=1e-4, atol=1e-3)


@pytest.mark.parametrize("value", ["0", "abc"])
def test_disabled_switch_keeps_default(monkeypatch, value):
    data = _random_input(32, 32).tobytes()
    default = _plan().execute(32, data, 8, 32, 0)
    monkeypatch.setenv("USE_SEGMENTED", value)
    switched = _plan().execute(32, data, 8, 32, 0)
    np.testing.assert_array_equal(default, switched)


def test_segmented_zero_dm_is_channel_sum(monkeypatch):
    monkeypatch.setenv("USE_SEGMENTED", "1")
    monkeypatch.setenv("USE_SEGMENTED_KERNEL", "1")
    raw = _random_input(128, 32, seed=3)
    plan = FDDCPUPlan(32, 1e-3, [0.0], np.zeros(32), 0)
    out = plan.execute(128, raw.tobytes(), 8, 32, 0)
    expected = ((raw.astype(np.float64) - 127.5) / 32).sum(axis=1)
    assert out.shape == (1, 128)
    np.testing.assert_allclose(out[0], expected, atol=1e-2)


def test_segmented_dedisperses_pulse(monkeypatch):
    monkeypatch.setenv("USE_SEGMENTED", "1")
    monkeypatch.setenv("USE_SEGMENTED_KERNEL", "1")
    nsamp, nchan, t0 = 256, 32, 50
    raw = np.full((nsamp, nchan), 128, dtype=np.uint8)
    channels = np.arange(nchan)
    raw[t0 + channels, channels] = 255
    plan = FDDCPUPlan(nchan, 1e-3, [0.0, 1.0], channels.astype(np.float32), 31)
    out = plan.execute(nsamp, raw.tobytes(), 8, 32, 0)
    assert out.shape == (2, nsamp - 31)
    assert int(np.argmax(out[1])) == t0
    assert out[1].max() > 4 * out[0].max()


def test_segmented_reference_matches_optimized_kernel(monkeypatch):
    monkeypatch.setenv("USE_SEGMENTED", "1")
    monkeypatch.setenv("USE_SEGMENTED_KERNEL", "1")
    data = _random_input(64, 32, seed=5).tobytes()
    optimized = _plan().execute(64, data, 8, 32, 0)
    monkeypatch.setenv("USE_REFERENCE", "1")
    reference = _plan().execute(64, data, 8, 32, 0)
    np.testing.assert_allclose(optimized, reference, rtol=1e-4, atol=1e-2)


def test_segmented_plain_kernels_agree(monkeypatch):
    monkeypatch.setenv("USE_SEGMENTED", "1")
    data = _random_input(64, 32, seed=7).tobytes()
    optimized = _plan().execute(64, data, 8, 32, 0)
    monkeypatch.setenv("USE_REFERENCE", "1")
    reference = _plan().execute(64, data, 8, 32, 0)
    assert optimized.shape == reference.shape == (3, 60)
    np.testing.assert_allclose(optimized, reference, rtol=1e-4, atol=1e-3)
# dedisp

Incoherent dedispersion for radio-astronomy time series, written in Python on
top of NumPy.

Radio pulses arrive later at low observing frequencies than at high ones. Given
filterbank data (time samples by frequency channels), a delay table per channel
and a list of trial dispersion measures (DMs), this package removes the delay
for each trial DM and returns one time series per DM. The work is done in the
frequency domain: every channel is Fourier transformed along time, phase-rotated
by its delay and summed, and the sum is transformed back.

## Installation

```
pip install .
```

For development and tests:

```
pip install .[test]
pytest
```

## Example

```python
import numpy as np
from dedisp.fdd_cpu import FDDCPUPlan

nchans, nsamps = 64, 4096
dt = 0.000064                        # seconds per sample
dm_list = np.linspace(0.0, 50.0, 16, dtype=np.float32)
delay_table = np.linspace(0.0, 2.0, nchans, dtype=np.float32)
max_delay = int(np.ceil(dm_list.max() * delay_table.max()))

plan = FDDCPUPlan(nchans, dt, dm_list, delay_table, max_delay)

data = np.random.default_rng(0).integers(
    0, 256, size=(nsamps, nchans), dtype=np.uint8
)
out = plan.execute(nsamps, data, 8, 32, 0)
print(out.shape)   # (len(dm_list), nsamps - max_delay)
```

The input is sample-major with one unsigned byte per channel; each byte is
shifted by 127.5 and divided by the number of channels before the transform.
The result is a float32 array of shape `(dm_count, nsamps - max_delay)`.

The delay for channel `c` and trial `d` is `dm_list[d] * delay_table[c] * dt`
seconds; `max_delay` is given in samples. The plan raises
`DedispError(ErrorCode.NO_DM_LIST_SET)` if the DM list is empty and
`DedispError(ErrorCode.TOO_FEW_NSAMPS)` if `nsamps < max_delay`.

### Choosing the implementation

`FDDCPUPlan.execute` reads these environment variables (an integer, non-zero
means on):

- `USE_SEGMENTED` – process the time series in overlapping segments. The
  segment FFT size starts at 16384 and doubles until at least 80 % of each
  segment is unaffected by `max_delay` (see `segment_layout`).
- `USE_REFERENCE` – use the straightforward kernels instead of the ones that
  sum channels in batches of 32.
- `USE_SEGMENTED_KERNEL` – in segmented mode, use the chunk-aware kernels.

The batched kernels need the number of channels to be a multiple of 32.

Timings and layout details are written to the `dedisp.fdd_cpu` logger at
DEBUG level.

## Modules

- `dedisp.fdd_cpu` – `FDDCPUPlan`, plus `generate_spin_frequency_table` and
  `segment_layout`.
- `dedisp.kernels` – the dedispersion kernels on their own
  (`dedisperse_reference`, `dedisperse_optimized`,
  `dedisperse_segmented_reference`, `dedisperse_segmented_optimized`),
  `dm_delays`, and the FFT helpers `fft_r2c` and `fft_c2r` (the latter scales
  by `1/n`).
- `dedisp.chunk` – the `Chunk` dataclass, `compute_chunks`,
  `copy_chunk_output`, `generate_spin_frequency_table_chunks` and
  `format_chunks`.
- `dedisp.helper` – `copy_2d`, `round_up`, `transpose_data`, `copy_data`,
  and host memory queries `get_total_memory`, `get_used_memory`,
  `get_free_memory` (in MiB; they rely on POSIX `sysconf` and `resource`).
- `dedisp.validation` – argument checks for an execution request:
  `validate_execute`, `default_strides`, `check_nchans` (limit 8192 by
  default) and `div_round_up`.
- `dedisp.gulps` – splitting the output samples into gulps: `Gulp`,
  `plan_gulps`, `max_nchans` and `uses_texture_memory`.
- `dedisp.errors` – `ErrorCode`, `DedispError` (a `RuntimeError` carrying
  `code`), `error_string` and `check_error`.
- `dedisp.flags` – `Flag` and `check_sync_flags`, which rejects `ASYNC`
  together with `WAIT`.

```python
from dedisp.validation import default_strides, validate_execute

in_stride, out_stride = default_strides(64, 4096, 100, 8, 32)
validate_execute(64, 4096, 100, 16, 8, in_stride, 32, out_stride, 0)
```

`validate_execute` checks strides, the DM count, the sample count, the flags
and the bit depths (input 1, 2, 4, 8, 16 or 32; output 8, 16 or 32), in that
order, and raises `DedispError` with the matching `ErrorCode` on the first
failure.

## What this package does not do

- It only runs the frequency-domain method on the host. There is no GPU
  execution and no time-domain dedispersion run: `dedisp.gulps` and
  `dedisp.validation` plan and check such a run but do not perform it.
- `FDDCPUPlan` handles 8-bit input and float32 output only; its `in_nbits`,
  `out_nbits` and `flags` arguments are not used to change that.
- It does not compute delay tables, DM lists or `max_delay` from observing
  frequencies; the caller supplies them.
- It reads no filterbank files and has no command-line program.
"""Incoherent dedispersion of radio-astronomy filterbank data on NumPy."""

__version__ = "0.1.0"
__all__ = ["chunk", "errors", "fdd_cpu", "flags", "gulps", "helper", "kernels", "validation"]
"""Confidence engine for AlphaConfluence.

Imports are lazy so that ``alphaconfluence.core`` can be imported without
pulling in the full gamma and quant stacks until the engine is used.
"""

_lazy_imports = {
    'SignalConfidenceEngine': 'alphaconfluence.core.confidence_engine',
    'ConfidenceResult': 'alphaconfluence.core.confidence_engine',
    'InstrumentInputs': 'alphaconfluence.core.confidence_engine',
    'WatchlistResult': 'alphaconfluence.core.confidence_engine',
}

__all__ = list(_lazy_imports.keys())


def __getattr__(name):
    """Lazy import handler - only import when attribute is accessed."""
    if name in _lazy_imports:
        import importlib
        module = importlib.import_module(_lazy_imports[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

"""Judge adapter modules.

Each module exposes a `build()` function returning an object that implements
`JudgeAdapterProtocol`; the engine loads them by dotted path.
"""

__all__ = ["stub_judge", "local_judge"]

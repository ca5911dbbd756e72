"""Public package surface for asmlens.

Exports ``main`` for programmatic CLI invocation.
The engine lives in submodules: ``regexes``, ``symbols``, ``search``,
``reduction`` and the request handlers in ``providers``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]

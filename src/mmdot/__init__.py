"""mmdot - personal machine configuration tooling.

The ``mmdot.ssh`` package keeps a hand-edited OpenSSH client config in sync
with a prioritized set of declarative host sources.
"""

__version__ = "0.4.0"

"""k4 -- bootstrap and extend pnpm/Turborepo monorepos.

Quick usage::

    k4 init my-monorepo
    cd my-monorepo
    k4 app jobs --node
"""

__version__ = "0.1.0"

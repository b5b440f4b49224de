"""Entry point: python -m starknet_codegen

Same commands as the starknet-codegen script, e.g.
  python -m starknet_codegen generate --spec 0.7.1 api.json write.json trace.json
"""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())

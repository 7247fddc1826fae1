#!/usr/bin/env python
"""Start the KPM aggregator HTTP intake."""

import logging
import os
import sys
from pathlib import Path

# Change to script directory so relative paths work correctly
script_dir = Path(__file__).parent.resolve()
os.chdir(script_dir)

# Add src to path
src_path = script_dir / "src"
sys.path.insert(0, str(src_path))

if __name__ == "__main__":
    import uvicorn

    if "KPM_CONFIG" not in os.environ and (script_dir / "config.yaml").exists():
        os.environ["KPM_CONFIG"] = str(script_dir / "config.yaml")

    from kpm_svc.main import load_config

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("kpm_svc.main:app", host=config.server.host, port=config.server.port, reload=False)

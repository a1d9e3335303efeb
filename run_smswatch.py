#!/usr/bin/env python3
"""
run_smswatch.py — run the watcher from a source checkout without installing.

  python run_smswatch.py                      # monitor, settings from smswatch_config.json
  python run_smswatch.py list --limit 20
  python run_smswatch.py serve
"""

import sys
from pathlib import Path

if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))
    from smswatch.cli import main
    sys.exit(main())

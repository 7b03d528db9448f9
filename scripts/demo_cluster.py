#!/usr/bin/env python3
"""
Starts several scheduler instances in one process, all sharing one lock
store, and counts how often a once-per-second task actually ran.

  python scripts/demo_cluster.py --instances 5 --seconds 6
  python scripts/demo_cluster.py --lock-store redis://127.0.0.1:6379/0
"""
from __future__ import annotations

import argparse
import sys
import threading
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from dcron import Scheduler, SchedulerConfig
from dcron.logging import configure_logging, get_logger


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--instances", type=int, default=3)
    parser.add_argument("--seconds", type=int, default=5)
    parser.add_argument("--lock-store", default=f"sqlite:///{REPO_ROOT / 'var' / 'locks.db'}")
    args = parser.parse_args()

    configure_logging("info")
    log = get_logger(__name__)

    counter_lock = threading.Lock()
    runs: list[str] = []

    schedulers: list[Scheduler] = []
    for i in range(args.instances):
        scheduler = Scheduler(SchedulerConfig(lock_store_url=args.lock_store, name_prefix="DEMO"))

        def tick(ctx, instance=i):
            with counter_lock:
                runs.append(f"{instance}@{ctx.scheduled_at:%H:%M:%S}")

        scheduler.register("* * * * * * *", tick, name="tick")
        schedulers.append(scheduler)

    threads = [threading.Thread(target=s.start, daemon=True) for s in schedulers]
    for t in threads:
        t.start()

    time.sleep(args.seconds)
    for s in schedulers:
        s.shutdown()

    log.info("%d instance(s), %d run(s) in %ds: %s", args.instances, len(runs), args.seconds, ", ".join(runs))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

#!/usr/bin/env python3
"""
push_sweep.py - Run a scheduled push pass outside the HTTP dispatch endpoint.

Usage examples:
  python scripts/push_sweep.py
  python scripts/push_sweep.py --time 09:00
  python scripts/push_sweep.py --type cron --time 21:30
  python scripts/push_sweep.py --env-file /path/to/.env --json-out /tmp/sweep.json

Flags:
  --env-file PATH
    Load environment variables from PATH before connecting (optional).
  --type {sweep,cron}
    Rule sweep (default) or the legacy daily reminder pass.
  --time HH:MM
    Simulated schedule time; defaults to the current time in PUSH_SCHEDULE_TIMEZONE.
  --json-out PATH
    Also write the summary JSON to PATH.
"""
import argparse
import json
import logging
import os
import textwrap
from typing import Optional

from dotenv import load_dotenv

from app.core.logging import setup_logging
from app.db import SessionScope
from app.modules.push.config import LoadPushConfig
from app.modules.push.dispatch import BuildDispatcher
from app.modules.push.errors import PushError
from app.modules.push.schemas import DispatchRequest, DispatchType
from app.modules.push.store import PushStore

SCHEDULED_TYPES = [DispatchType.Sweep.value, DispatchType.Cron.value]


def LoadEnvFile(EnvPath: Optional[str]) -> None:
    if not EnvPath:
        return
    if not os.path.exists(EnvPath):
        raise RuntimeError(f"Env file not found: {EnvPath}")
    load_dotenv(dotenv_path=EnvPath)


def WriteJson(Payload: object, OutputPath: Optional[str]) -> None:
    Text = json.dumps(Payload, indent=2, ensure_ascii=False)
    print(Text)
    if OutputPath:
        with open(OutputPath, "w", encoding="utf-8") as Handle:
            Handle.write(Text + "\n")


def ParseArgs() -> argparse.Namespace:
    Parser = argparse.ArgumentParser(description="Run a scheduled push notification pass.")
    Parser.add_argument("--env-file", default=None, help="Load environment variables from this file.")
    Parser.add_argument("--type", choices=SCHEDULED_TYPES, default=DispatchType.Sweep.value)
    Parser.add_argument("--time", default=None, help="Simulated HH:MM schedule time.")
    Parser.add_argument("--json-out", default=None, help="Write the summary JSON to this path.")
    return Parser.parse_args()


def RunPass(DispatchTypeName: str, SimulatedTime: Optional[str]) -> dict:
    Dispatcher = BuildDispatcher(LoadPushConfig())
    Request = DispatchRequest(type=DispatchTypeName, simulated_time=SimulatedTime)
    with SessionScope() as Session:
        Summary = Dispatcher.Dispatch(PushStore(Session), Request)
    return Summary.model_dump(exclude_none=True)


def Main() -> int:
    Args = ParseArgs()
    try:
        LoadEnvFile(Args.env_file)
        setup_logging()
        Summary = RunPass(Args.type, Args.time)
        WriteJson(Summary, Args.json_out)
        return 0
    except KeyboardInterrupt:
        return 0
    except PushError as Ex:
        WriteJson({"error": str(Ex)}, Args.json_out)
        return 2
    except Exception as Ex:  # noqa: BLE001
        logging.getLogger("push.sweep").exception("scheduled push pass failed")
        print("\nError:")
        print(textwrap.indent(str(Ex), "  "))
        return 1


if __name__ == "__main__":
    raise SystemExit(Main())

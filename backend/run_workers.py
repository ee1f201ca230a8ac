#!/usr/bin/env python3
"""
Worker Supervisor
=================

Runs the webhook API, the submission worker and the daily report worker
as subprocesses in one container, restarting any that exits.

Usage:
    python run_workers.py                     # Run everything
    python run_workers.py --only api          # Just the webhook API
    python run_workers.py --only submission   # Just the submission worker
    python run_workers.py --only report       # Just the daily report worker
    python run_workers.py --no-api            # Workers only
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Load .env
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
)
log = logging.getLogger('worker-supervisor')

# One submission worker only: per-worker ordering relies on it
PROCESSES: Dict[str, List[str]] = {
    'api': ['uvicorn', 'main:app', '--host', '0.0.0.0', '--port', '8000'],
    'submission': [sys.executable, 'run_submission_worker.py'],
    'report': [sys.executable, 'run_daily_report_worker.py'],
}

RESTART_DELAY_SECONDS = 5.0
STOP_TIMEOUT_SECONDS = 10.0


def select_processes(only: Optional[str] = None, no_api: bool = False) -> Dict[str, List[str]]:
    """Commands to run, keyed by process name"""
    names = list(PROCESSES) if only in (None, 'all') else [only]
    return {name: PROCESSES[name] for name in names if not (no_api and name == 'api')}


async def relay(name: str, stream: asyncio.StreamReader):
    """Echo a child's output with its name as prefix"""
    async for line in stream:
        print(f"[{name}] {line.decode(errors='replace')}", end='', flush=True)


async def terminate(name: str, proc: asyncio.subprocess.Process):
    if proc.returncode is not None:
        return
    log.info(f"Stopping {name} (PID {proc.pid})")
    proc.terminate()
    try:
        await asyncio.wait_for(proc.wait(), STOP_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        log.warning(f"Force killing {name}")
        proc.kill()
        await proc.wait()


async def supervise(
    name: str,
    command: List[str],
    stop: asyncio.Event,
    restart_delay: float = RESTART_DELAY_SECONDS,
):
    """Keep one process running until stop is set"""
    while not stop.is_set():
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            log.error(f"Failed to start {name}: {e}")
            return

        log.info(f"Started {name} (PID {proc.pid})")
        output = asyncio.create_task(relay(name, proc.stdout))
        exited = asyncio.create_task(proc.wait())
        stopping = asyncio.create_task(stop.wait())

        await asyncio.wait({exited, stopping}, return_when=asyncio.FIRST_COMPLETED)
        stopping.cancel()
        if stop.is_set():
            await terminate(name, proc)
        await exited
        await output

        if stop.is_set():
            return

        log.warning(f"{name} exited with code {proc.returncode}, restarting in {restart_delay}s")
        try:
            await asyncio.wait_for(stop.wait(), restart_delay)
        except asyncio.TimeoutError:
            pass


async def run(processes: Dict[str, List[str]], stop: Optional[asyncio.Event] = None):
    if not processes:
        log.error("No workers configured")
        return

    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop.set)

    log.info(f"Starting {', '.join(processes)}")
    await asyncio.gather(*(
        supervise(name, command, stop) for name, command in processes.items()
    ))
    log.info("All workers stopped")


def main():
    parser = argparse.ArgumentParser(description='Worker Supervisor')
    parser.add_argument('--only', choices=['api', 'submission', 'report', 'all'],
                        help='Run only specific worker type')
    parser.add_argument('--no-api', action='store_true',
                        help='Skip API server (run workers only)')
    args = parser.parse_args()

    asyncio.run(run(select_processes(args.only, args.no_api)))


if __name__ == '__main__':
    main()

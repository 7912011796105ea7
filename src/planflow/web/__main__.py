"""Run the plan store server: python -m planflow.web [--port N] [--db PATH]."""

import argparse

from ..logging_config import setup_logging
from . import run_plan_server


def main(argv: list[str] | None = None) -> None:
	parser = argparse.ArgumentParser(prog="planflow-server", description="Serve a plan store over HTTP")
	parser.add_argument("--port", type=int, default=0, help="Port to listen on (default: configured embedded_port)")
	parser.add_argument("--db", default="", help="SQLite database path (default: configured db_path)")
	parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
	args = parser.parse_args(argv)

	setup_logging()
	run_plan_server(port=args.port, db_path=args.db, host=args.host)


if __name__ == "__main__":
	main()

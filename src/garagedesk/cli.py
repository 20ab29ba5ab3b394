from __future__ import annotations

import argparse
import getpass
import logging
from pathlib import Path

from .config import AppConfig
from .db import Db
from .importers import import_clients_csv, import_parts_json
from .wiring import Repositories, build_services

log = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="garagedesk", description="GarageDesk administration")
    parser.add_argument("--config", help="path to config.toml (default: $GARAGEDESK_CONFIG or ./config.toml)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create tables, indexes and views")

    seed = sub.add_parser("seed-admin", help="create or reset the admin account")
    seed.add_argument("--email", required=True)
    seed.add_argument("--name", default="Administrator")
    seed.add_argument("--password", help="prompted for when omitted")

    imp_clients = sub.add_parser("import-clients", help="import clients from a CSV file")
    imp_clients.add_argument("path")

    imp_parts = sub.add_parser("import-parts", help="upsert parts from a JSON catalogue")
    imp_parts.add_argument("path")

    serve = sub.add_parser("serve", help="run the development server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)

    return parser


def init_db(db: Db) -> None:
    ddl = SCHEMA_PATH.read_text(encoding="utf-8")
    with db.transaction() as conn:
        conn.execute(ddl)
    log.info("Schema applied from %s", SCHEMA_PATH)


def run_command(args: argparse.Namespace, cfg: AppConfig, db: Db) -> None:
    repos = Repositories()

    if args.command == "init-db":
        init_db(db)
        print("Schema applied.")

    elif args.command == "seed-admin":
        password = args.password or getpass.getpass("Admin password: ")
        services = build_services(repos, cfg.auth)
        with db.transaction() as conn:
            user = services.auth.seed_admin(conn, full_name=args.name, email=args.email, password=password)
        print(f'Admin #{user["id"]} {user["email"]} ready.')

    elif args.command == "import-clients":
        with db.transaction() as conn:
            n = import_clients_csv(conn, args.path, repos.client_repo)
        print(f"Imported {n} clients")

    elif args.command == "import-parts":
        with db.transaction() as conn:
            n = import_parts_json(
                conn, args.path, repos.part_repo, default_reorder_level=cfg.business.default_reorder_level
            )
        print(f"Imported {n} parts")

    elif args.command == "serve":
        from .web.app import create_app

        app = create_app(cfg, db=db, repos=repos)
        app.run(host=args.host, port=args.port, debug=cfg.is_development, use_reloader=False)

from __future__ import annotations

import sys

from garagedesk.cli import build_parser, run_command
from garagedesk.config import ConfigError, load_config
from garagedesk.db import Db, DbError
from garagedesk.errors import GarageError
from garagedesk.importers import ImportFileError
from garagedesk.logging_setup import configure_logging


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    db = None
    try:
        cfg = load_config(args.config)
        configure_logging(cfg.log_level, cfg.log_dir)
        db = Db(cfg.db)
        db.open()
        run_command(args, cfg, db)
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}", file=sys.stderr)
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}", file=sys.stderr)
        return 3
    except (GarageError, ImportFileError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    finally:
        if db is not None:
            db.close()


if __name__ == "__main__":
    raise SystemExit(main())

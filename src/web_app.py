from __future__ import annotations

import atexit

from garagedesk.config import load_config
from garagedesk.db import Db
from garagedesk.logging_setup import configure_logging
from garagedesk.web.app import create_app

# WSGI entry point: gunicorn web_app:app
cfg = load_config()
configure_logging(cfg.log_level, cfg.log_dir)

db = Db(cfg.db)
db.open()
atexit.register(db.close)

app = create_app(cfg, db=db)


if __name__ == "__main__":
    app.run(debug=cfg.is_development, host="127.0.0.1", port=5000, use_reloader=False)

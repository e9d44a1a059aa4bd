from __future__ import annotations

import os

from whitenoise import WhiteNoise

from vett.app_factory import create_app

# Expose a module-level WSGI application for Gunicorn
app = create_app()

# Wrap with WhiteNoise to robustly serve static assets in production
static_root = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")
app = WhiteNoise(app, root=static_root, prefix="static/")

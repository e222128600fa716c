from __future__ import annotations

import os

from . import create_app

app = create_app(os.getenv("APP_CONFIG"))

if __name__ == "__main__":
    app.run(host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")), threaded=True)

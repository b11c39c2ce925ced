import os

# Keep the module-level engine off the production database while tests import the app.
os.environ.setdefault("DATABASE_URL", "sqlite://")

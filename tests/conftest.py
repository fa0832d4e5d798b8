"""Test environment: settings must be in place before storefront modules are imported."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "dev"
os.environ["REFRESH_TOKEN_STORE"] = "database"
# Minimum bcrypt cost keeps the suite fast; production default is 10.
os.environ["BCRYPT_ROUNDS"] = "4"

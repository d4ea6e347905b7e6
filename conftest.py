"""
Configuration file for pytest.

This file loads environment variables from a local .env file before any
test module is imported.
"""
import dotenv

# Load environment variables from .env file
dotenv.load_dotenv()

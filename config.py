# config.py
import os
from dotenv import load_dotenv
import secrets
from datetime import timedelta

basedir = os.path.abspath(os.path.dirname(__file__))
dotenv_path = os.path.join(basedir, '.env')
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY:
        print("Warning: SECRET_KEY not set in .env. Using a temporary default key.")
        SECRET_KEY = secrets.token_hex(16)

    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() in ('true', '1', 't')
    MONGO_URI = os.environ.get('DATABASE_URL')
    if not MONGO_URI:
        MONGO_URI = 'mongodb://localhost:27017/stoir'

    # The desktop shell starts the API on this port and walks upwards when it is taken.
    API_HOST = os.environ.get('STOIR_API_HOST', '127.0.0.1')
    API_PORT = int(os.environ.get('STOIR_API_PORT', 3131))
    PORT_FALLBACK_ATTEMPTS = int(os.environ.get('PORT_FALLBACK_ATTEMPTS', 20))

    FRONTEND_URLS = os.environ.get('FRONTEND_URLS', 'http://localhost:3000,http://127.0.0.1:3131')

    # 'mongodb' keeps counters across restarts, 'memory' lives as long as the process.
    TRANSACTION_NUMBER_BACKEND = os.environ.get('TRANSACTION_NUMBER_BACKEND', 'mongodb')

    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY')
    if not JWT_SECRET_KEY:
        print("Warning: JWT_SECRET_KEY not set in .env. Using a temporary default key. THIS IS INSECURE FOR PRODUCTION.")
        JWT_SECRET_KEY = secrets.token_hex(32)

    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=12)

config = Config()

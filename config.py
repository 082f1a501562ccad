# config.py
import os
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

load_dotenv()


class Config:
    DATABASE_URL = os.getenv('DATABASE_URL', f"sqlite:///{BASE_DIR / 'scripture.db'}")
    IMPORT_BATCH_SIZE = int(os.getenv('IMPORT_BATCH_SIZE', '1000'))
    IMPORT_DATA_DIR = Path(os.getenv('IMPORT_DATA_DIR', str(BASE_DIR / 'data')))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(50 * 1024 * 1024)))  # 50MB uploads

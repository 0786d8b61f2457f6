"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""
    
    # Catalog API
    API_BASE_URL = os.getenv("API_BASE_URL", "https://mybook.ru")
    PAGE_LIMIT = int(os.getenv("PAGE_LIMIT", "100"))
    
    # Database
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "mybookdb2")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "")
    DB_MAX_CONNECTIONS = int(os.getenv("DB_MAX_CONNECTIONS", "10"))
    
    @property
    def DATABASE_URL(self):
        """Connection string, either given whole or built from the DB_* parts."""
        url = os.getenv("DATABASE_URL")
        if url:
            return url
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
    
    # Crawl defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    MAX_RETRIES = int(os.getenv("MAX_RETRIES", "5"))
    INITIAL_BACKOFF_MS = int(os.getenv("INITIAL_BACKOFF_MS", "200"))
    MAX_PAGES = int(os.getenv("MAX_PAGES", "10000"))
    
    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

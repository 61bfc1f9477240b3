import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    # Comma separated SQLAlchemy connection strings
    SQL_INSTANCE = os.getenv('PIISCAN_SQL_INSTANCE')
    SQL_USERNAME = os.getenv('PIISCAN_SQL_USERNAME')
    SQL_PASSWORD = os.getenv('PIISCAN_SQL_PASSWORD')
    SAMPLE_COUNT = os.getenv('PIISCAN_SAMPLE_COUNT', '100')

    # Extra rule files, appended to the bundled defaults
    KNOWN_TYPES_PATH = os.getenv('PIISCAN_KNOWN_TYPES_PATH')
    PATTERNS_PATH = os.getenv('PIISCAN_PATTERNS_PATH')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.getenv('LOG_FILE')

    @classmethod
    def instances(cls):
        if not cls.SQL_INSTANCE:
            return []
        return [i.strip() for i in cls.SQL_INSTANCE.split(',') if i.strip()]

    @classmethod
    def validate(cls):
        if not cls.instances():
            print("WARNING: PIISCAN_SQL_INSTANCE is not set in .env or environment and no --sql-instance was given.")
            print("Please set it to one or more SQLAlchemy connection strings, separated by commas.")
            print("Example for SQL Server: mssql+pyodbc://server/db?driver=ODBC+Driver+17+for+SQL+Server")
            print("Example for SQLite: sqlite:///example.db")
            return False
        return True

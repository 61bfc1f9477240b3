from piiscan.db.connector import DatabaseConnector, describe_instance

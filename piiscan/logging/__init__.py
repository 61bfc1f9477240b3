from piiscan.logging.logger import setup_logging

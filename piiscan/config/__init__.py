from piiscan.config.settings import Config

import os


class Config:
    def __init__(self):
        # logging
        self.LOG_LEVEL = os.getenv("PG_CONTROL_EDITOR_LOG_LEVEL", "info").lower()

        # output
        self.FSYNC = os.getenv("PG_CONTROL_EDITOR_FSYNC", "true").lower() == "true"

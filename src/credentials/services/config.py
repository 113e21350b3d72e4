import os

ROLE_ARN_KEY = "ASSUME_ROLE_ARN"
SESSION_PREFIX_KEY = "ASSUME_ROLE_SESSION_PREFIX"


class Config:
    def __init__(self, settings=None):
        settings = os.environ if settings is None else settings
        self.role_arn = settings.get(ROLE_ARN_KEY) or None
        self.session_name_prefix = settings.get(SESSION_PREFIX_KEY) or None
        self.region = settings.get("AWS_REGION")
        self.log_level = settings.get("LOG_LEVEL", "INFO")

"""Service configuration and CLI loader."""


class RedirectorConfig:
    def __init__(self):
        self.settings_file = "settings.json"
        self.events_file = "-"
        self.output_file = "-"
        self.log_access_file = None
        self.log_error_file = None
        self.stats_file = None
        self.quiet = False


class ConfigLoader:
    @staticmethod
    def load_from_args(args) -> RedirectorConfig:
        config = RedirectorConfig()
        config.settings_file = args.settings
        config.events_file = args.events
        config.output_file = args.output
        config.log_access_file = args.log_access
        config.log_error_file = args.log_error
        config.stats_file = args.stats_file
        config.quiet = args.quiet
        return config

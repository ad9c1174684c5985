from enpensent_api.config.settings import settings

"""Process-level settings for the preprocessor command.

Values are read from the environment so the hosting build tool can tune them
without touching ``book.toml``.
"""

import os

PREPROCESSOR_NAME = os.getenv('GOALS_PREPROCESSOR_NAME', 'goals')
SUPPORTED_RENDERERS = ('html', 'markdown')
WORKERS = int(os.getenv('GOALS_WORKERS', '4'))

log_level = os.getenv('GOALS_LOG_LEVEL', 'INFO').upper()

# stdout carries the book JSON back to the build tool, so logs go to stderr.
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'plain': {
            'format': '%(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',
            'formatter': 'plain',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': log_level,
    },
    'loggers': {
        'goals_preprocessor': {
            'handlers': ['console'],
            'level': log_level,
            'propagate': False,
        },
    },
}

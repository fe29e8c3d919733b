"""Constants shared across testdeck packages."""

TESTDECK_HOME_DIR = ".testdeck"
LOG_SUBDIR = "log"

PROJECT_CONFIG_FILE = ".testdeck.yaml"
USER_CONFIG_DIR = "testdeck"
USER_CONFIG_FILE = "config.yaml"

ENV_PREFIX = "TESTDECK_"

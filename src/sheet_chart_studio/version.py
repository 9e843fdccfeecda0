APP_TITLE = "Sheet Chart Studio"
MAJOR_VERSION = 1
BUILD_VERSION = "1.0.0"

API_VERSION = "v1"
API_PREFIX = f"/api/{API_VERSION}"

"""HTTP constants for the fetch layer."""

HTTP_STATUS_OK = 200
HTTP_STATUS_NOT_MODIFIED = 304

# Request header names
HEADER_USER_AGENT = "User-Agent"
HEADER_CONFIGCAT_USER_AGENT = "X-ConfigCat-UserAgent"
HEADER_IF_NONE_MATCH = "If-None-Match"

# Response header names
HEADER_ETAG = "ETag"

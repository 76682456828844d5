PROTECTED_TOOL_ERRORS_MESSAGE = (
    "This feed needs a signed-in user. Pass a valid 'Bearer <token>' access_token "
    "or an Authorization header."
)

UNKNOWN_FEED_MESSAGE = "Unknown feed '{feed}'. Available feeds: {available}."

UNKNOWN_SESSION_MESSAGE = (
    "Discovery session '{session_id}' was not found. It may have been closed or "
    "expired; open the feed again."
)

GLOBAL_NOT_SUPPORTED_MESSAGE = "The {feed} feed only supports nearby search."

from __future__ import annotations

KNOWN_PANEL_IDS = (1, 2)
DEFAULT_PANEL_ID = 1

MAX_SELECT_OPTIONS = 25
MAX_FORM_FIELDS = 5
MAX_OPTION_TEXT = 100
MAX_PLACEHOLDER = 100
MAX_INPUT_LABEL = 45
MAX_BUTTON_LABEL = 80
MAX_MODAL_TITLE = 45
MAX_CUSTOM_ID = 100
MIN_INPUT_LENGTH = 1
MAX_INPUT_LENGTH = 4000
MAX_EMBED_FIELD_NAME = 256
MAX_EMBED_FIELD_VALUE = 1024

SELECT_PLACEHOLDER = "Select the Contact Reason"
DEFAULT_OPTION_LABEL = "Reason"
DEFAULT_BUTTON_LABEL = "Create ticket"
DEFAULT_PANEL_TITLE = "Support"
DEFAULT_PANEL_BODY = "Use the control below to open a ticket."
PANEL_COLOR = 0xFFA500

DEFAULT_COMMAND_SUBJECT = "no-subject"
OPENER_MARKER_PREFIX = "opener:"

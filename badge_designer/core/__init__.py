from .editor import BadgeEditor
from .exceptions import BadgeError, ImageLoadError, QRGenerationError, TemplateError
from .fields import AVAILABLE_FIELDS, DEFAULT_SAMPLE_DATA, extract_dynamic_fields, resolve_dynamic_fields
from .history import History
from .models import BadgeDocument, BadgeElement, BadgeTemplate
from .qrcodes import QRCodeQueue, encode_qr_data_url
from .render import RenderScheduler, RenderedBadge, render_document
from .renderers import RenderContext, render_element

from .protocols import DrawingSurface
from .qt_scene import QtSceneSurface, make_item, pil_to_qimage

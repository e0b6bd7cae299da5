"""
learnpreview - 课程内容预览工具

Packages local curriculum content, uploads it to Learn and builds a preview.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config.schema import PreviewConfig
from .preview.previewer import Previewer, PreviewResult

__all__ = ["PreviewConfig", "Previewer", "PreviewResult", "__version__"]

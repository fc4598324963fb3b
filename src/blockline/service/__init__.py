"""Document handles: the entry point consumed by exporters and other collaborators."""

from blockline.service.handle import DocumentHandle, ScanState, open_document

__all__ = ["DocumentHandle", "ScanState", "open_document"]

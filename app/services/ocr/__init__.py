from .vision_service import ImagePayload, VisionOCRService, parse_image_data_uri

__all__ = ["ImagePayload", "VisionOCRService", "parse_image_data_uri"]

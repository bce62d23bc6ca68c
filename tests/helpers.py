import io

from PIL import Image

from ai_analyzer.detectors.model import ModelInferenceAdapter


class FakeClassifier:
    """Stands in for the torch runtime: returns fixed named outputs."""

    def __init__(self, logits=(0.0, 0.0), output_name="logits", error=None):
        self.logits = list(logits)
        self.output_name = output_name
        self.error = error
        self.calls = 0

    def predict(self, pixels):
        self.calls += 1
        if self.error:
            raise self.error
        return {self.output_name: self.logits}


def make_adapter(classifier: FakeClassifier) -> ModelInferenceAdapter:
    return ModelInferenceAdapter(loader=lambda: classifier)


def make_image(width=512, height=512, fmt="PNG", **save_kwargs) -> Image.Image:
    """Encode then decode so the image carries a real format and metadata."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(120, 80, 200)).save(buf, format=fmt, **save_kwargs)
    buf.seek(0)
    img = Image.open(buf)
    img.load()
    return img


def image_bytes(width=512, height=512, fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color="white").save(buf, format=fmt)
    return buf.getvalue()


# Scores 70: no EXIF, PNG block, no GPS, 512x512
AI_LIKE_METADATA = {"{PNG}": {}, "PixelWidth": 512, "PixelHeight": 512}

# Scores 0: EXIF, no PNG, GPS, odd dimensions
CAMERA_METADATA = {"{Exif}": {"Make": "Canon"}, "{GPS}": {"GPSLatitude": 1.0}, "PixelWidth": 101, "PixelHeight": 57}

import pytest

from ai_analyzer.detectors.model import ModelInferenceAdapter
from tests.helpers import FakeClassifier, make_adapter


@pytest.fixture
def fake_classifier():
    # softmax([0, 2])[1] ~= 0.8808
    return FakeClassifier(logits=[0.0, 2.0])


@pytest.fixture
def adapter(fake_classifier):
    return make_adapter(fake_classifier)


@pytest.fixture(autouse=True)
def reset_shared_adapter():
    ModelInferenceAdapter._shared = None
    yield
    ModelInferenceAdapter._shared = None

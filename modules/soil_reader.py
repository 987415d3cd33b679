import io
import os
import re
import logging

import requests
from dotenv import load_dotenv

from recommender import DEFAULT_SOIL_VALUES

load_dotenv()

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ['image/jpeg', 'image/jpg', 'image/png', 'image/webp']
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB

NUMBER = r'([0-9]+\.?[0-9]*)'

# field -> (patterns tried in order, accepted range)
SOIL_PATTERNS = {
    'ph': ([
        re.compile(r'ph[:\s=]*' + NUMBER),
        re.compile(r'ph\s*level[:\s=]*' + NUMBER),
        re.compile(r'acidity[:\s=]*' + NUMBER),
    ], (0, 14)),
    'nitrogen': ([
        re.compile(r'(?:nitrogen|n)[:\s=]*' + NUMBER + r'\s*%?'),
        re.compile(r'n[:\s]*content[:\s=]*' + NUMBER),
        re.compile(r'total[:\s]*n[:\s=]*' + NUMBER),
    ], (0, 10)),
    'phosphorus': ([
        re.compile(r'(?:phosphorus|p)[:\s=]*' + NUMBER + r'\s*%?'),
        re.compile(r'p2o5[:\s=]*' + NUMBER),
        re.compile(r'available[:\s]*p[:\s=]*' + NUMBER),
    ], (0, 5)),
    'potassium': ([
        re.compile(r'(?:potassium|k)[:\s=]*' + NUMBER + r'\s*%?'),
        re.compile(r'k2o[:\s=]*' + NUMBER),
        re.compile(r'available[:\s]*k[:\s=]*' + NUMBER),
    ], (0, 8)),
}


def is_valid_image_file(mimetype, size):
    """Only JPEG, PNG and WebP uploads up to 10MB are analyzed."""
    if not mimetype or mimetype.lower() not in ALLOWED_IMAGE_TYPES:
        return False
    return size <= MAX_IMAGE_SIZE


def parse_soil_data_from_text(text):
    """
    Pull pH / N / P / K values out of free text such as
    "ph: 6.5, nitrogen 0.8%, p2o5 0.3".
    For each field the first pattern with an in-range value wins.
    """
    soil_data = {}
    if not text:
        return soil_data

    lower_text = text.lower()
    for field, (patterns, (low, high)) in SOIL_PATTERNS.items():
        for pattern in patterns:
            match = pattern.search(lower_text)
            if not match:
                continue
            value = float(match.group(1))
            if low <= value <= high:
                soil_data[field] = value
                break

    return soil_data


def validate_soil_data(soil_data):
    """Drop values outside their physical range; keep location as-is."""
    validated = {}
    for field, (_, (low, high)) in SOIL_PATTERNS.items():
        value = soil_data.get(field)
        if value is not None and low <= value <= high:
            validated[field] = value

    if soil_data.get('location'):
        validated['location'] = soil_data['location']

    return validated


class SoilImageReader:
    def __init__(self, model_name=None, api_token=None):
        self.model_name = model_name or os.getenv('CAPTION_MODEL', 'nlpconnect/vit-gpt2-image-captioning')
        self.api_token = api_token or os.getenv('HF_API_TOKEN')
        # Hugging Face inference router; override HF_INFERENCE_URL for a dedicated endpoint
        self.inference_url = os.getenv('HF_INFERENCE_URL', 'https://router.huggingface.co/hf-inference/models')

        # Heavy model (Lazy loaded)
        self.pipeline = None
        self.pipeline_loaded = False

    def _load_pipeline(self):
        if self.pipeline_loaded:
            return self.pipeline

        logger.info("⏳ Lazy loading image captioning model %s...", self.model_name)
        try:
            from transformers import pipeline
            self.pipeline = pipeline('image-to-text', model=self.model_name)
            logger.info("✅ Image captioning pipeline initialized")
        except Exception as e:
            logger.warning("⚠️ Failed to initialize image captioning pipeline: %s", e)
            self.pipeline = None

        self.pipeline_loaded = True
        return self.pipeline

    def _caption_remote(self, image_bytes):
        response = requests.post(
            f"{self.inference_url}/{self.model_name}",
            headers={'Authorization': f"Bearer {self.api_token}"},
            data=image_bytes,
            timeout=60,
        )
        response.raise_for_status()
        result = response.json()
        if isinstance(result, list):
            return result[0].get('generated_text', '') if result else ''
        return result.get('generated_text', '')

    def _caption_local(self, image_bytes):
        captioner = self._load_pipeline()
        if captioner is None:
            raise RuntimeError("Text extraction pipeline not available")

        from PIL import Image
        image = Image.open(io.BytesIO(image_bytes)).convert('RGB')
        result = captioner(image)
        if isinstance(result, list):
            return result[0].get('generated_text', '') if result else ''
        return result.get('generated_text', '')

    def extract_text(self, image_bytes):
        """Describe the image as text; returns "" when captioning fails."""
        try:
            # Priority 1: hosted inference (if token exists)
            if self.api_token:
                try:
                    return self._caption_remote(image_bytes)
                except Exception as e:
                    logger.warning("⚠️ Hosted captioning failed: %s", e)

            # Priority 2: local transformers pipeline
            return self._caption_local(image_bytes)
        except Exception as e:
            logger.error("Error extracting text from image: %s", e)
            return ""

    def analyze(self, image_bytes):
        """
        Extract soil values from an uploaded image.
        Falls back to the default reading when nothing usable is found
        or the analysis fails outright.
        """
        try:
            text = self.extract_text(image_bytes)
            soil_data = parse_soil_data_from_text(text)
            if not soil_data:
                logger.info("No soil data extracted from image, using defaults")
                return dict(DEFAULT_SOIL_VALUES)
            return soil_data
        except Exception as e:
            logger.error("Error analyzing image for soil data: %s", e)
            return dict(DEFAULT_SOIL_VALUES)

from flask import Flask, render_template, request, redirect, url_for, flash, jsonify
from werkzeug.exceptions import RequestEntityTooLarge
import logging
import os
from dotenv import load_dotenv

from recommender import generate_recommendations, fallback_result
from modules.soil_reader import MAX_IMAGE_SIZE, SoilImageReader, is_valid_image_file, validate_soil_data

# Load environment variables
load_dotenv()


def resolve_log_level(name):
    """Unknown level names fall back to INFO."""
    level = logging.getLevelName((name or 'INFO').upper())
    return level if isinstance(level, int) else logging.INFO


logging.basicConfig(
    level=resolve_log_level(os.environ.get('LOG_LEVEL')),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

# ---------------- Flask Setup ----------------
app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SESSION_SECRET', 'crop-fertilizer-advisor-secret-key')
# Room for the multipart envelope around a 10MB image
app.config['MAX_CONTENT_LENGTH'] = MAX_IMAGE_SIZE + 64 * 1024

INVALID_IMAGE_MESSAGE = "Invalid file format or size. Please upload a JPEG, PNG, or WebP image under 10MB."

SOIL_FIELDS = ['ph', 'nitrogen', 'phosphorus', 'potassium']

# ---------------- Global Engine Holders ----------------
_soil_reader = None


def get_soil_reader():
    global _soil_reader
    if _soil_reader is None:
        _soil_reader = SoilImageReader()
        app.logger.info("✅ Soil image reader initialized")
    return _soil_reader


# ---------------- Form Helpers ----------------
def parse_number(value):
    """Blank or non-numeric form input counts as "not provided"."""
    if value is None:
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def read_soil_form(form):
    soil_data = {field: parse_number(form.get(field)) for field in SOIL_FIELDS}
    soil_data['location'] = (form.get('location') or '').strip() or None
    return soil_data


def read_farm_form(form):
    return {
        'farm_size': parse_number(form.get('farm_size')),
        'crops': (form.get('crops') or '').strip(),
    }


def read_json_soil(payload):
    soil_data = {}
    for field in SOIL_FIELDS:
        value = payload.get(field)
        if isinstance(value, bool):
            continue
        soil_data[field] = value if isinstance(value, (int, float)) else parse_number(value)
    if isinstance(payload.get('location'), str):
        soil_data['location'] = payload['location'].strip() or None
    return soil_data


def read_upload():
    """Return the uploaded image bytes, or None if the upload is unusable."""
    image = request.files.get('image')
    if image is None or not image.filename:
        return None
    data = image.read()
    if not is_valid_image_file(image.mimetype, len(data)):
        return None
    return data


def run_recommendations(soil_data):
    try:
        return generate_recommendations(soil_data)
    except Exception:
        app.logger.exception("Error getting recommendations, using fallback result")
        return fallback_result()


def analyze_upload(image_bytes):
    reader = get_soil_reader()
    return reader.analyze(image_bytes)


# ---------------- Error Handlers ----------------
@app.errorhandler(RequestEntityTooLarge)
def upload_too_large(e):
    if request.path.startswith('/api/'):
        return jsonify({'error': INVALID_IMAGE_MESSAGE}), 413
    flash(INVALID_IMAGE_MESSAGE, 'danger')
    return redirect(url_for('home'))


# ---------------- Routes ----------------
@app.route('/health')
def health():
    """Health check endpoint for deployment platforms"""
    return jsonify({"status": "healthy", "service": "Smart Crop & Fertilizer Advisor"}), 200


@app.route('/')
def home():
    return render_template('index.html', soil_data={}, farm={}, results=None)


@app.route('/analyze-image', methods=['POST'])
def analyze_image():
    soil_data = read_soil_form(request.form)
    farm = read_farm_form(request.form)

    image_bytes = read_upload()
    if image_bytes is None:
        flash(INVALID_IMAGE_MESSAGE, 'danger')
        return render_template('index.html', soil_data=soil_data, farm=farm, results=None), 400

    extracted = analyze_upload(image_bytes)
    # Values read from the image replace whatever was typed in
    soil_data.update(extracted)
    flash('Soil values extracted from image. Review them and get your recommendations.', 'success')
    return render_template('index.html', soil_data=soil_data, farm=farm, results=None)


@app.route('/recommend', methods=['POST'])
def recommend():
    soil_data = validate_soil_data(read_soil_form(request.form))
    farm = read_farm_form(request.form)
    results = run_recommendations(soil_data)
    return render_template('index.html', soil_data=soil_data, farm=farm, results=results)


# ----------------- JSON API -----------------
@app.route('/api/analyze-image', methods=['POST'])
def api_analyze_image():
    image_bytes = read_upload()
    if image_bytes is None:
        return jsonify({'error': INVALID_IMAGE_MESSAGE}), 400
    return jsonify({'soil_data': analyze_upload(image_bytes)})


@app.route('/api/recommend', methods=['POST'])
def api_recommend():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return jsonify({'error': 'Request body must be a JSON object of soil values.'}), 400

    soil_data = validate_soil_data(read_json_soil(payload))
    return jsonify(run_recommendations(soil_data))


@app.route('/about')
def about():
    return render_template('index.html', soil_data={}, farm={}, results=None, show_about=True)


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port)

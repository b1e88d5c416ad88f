from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
import os
import uuid
from werkzeug.utils import secure_filename
from converter import AudioVaseConverter
from stl_io import mesh_to_threejs_json, get_mesh_info, save_stl
from vase_geometry import GenerationSettings, RibSettings
import threading
import time

app = Flask(__name__)
CORS(app)

# Configuration
UPLOAD_FOLDER = 'uploads'
OUTPUT_FOLDER = 'outputs'
ALLOWED_EXTENSIONS = {'wav', 'mp3', 'flac', 'm4a', 'ogg'}
MAX_AGE_SECONDS = 3600

# Store conversion status
conversion_status = {}
conversion_threads = {}

# form field -> (settings attribute, type)
SETTINGS_FIELDS = {
    'height': ('height', float),
    'baseRadius': ('base_radius', float),
    'topRadius': ('top_radius', float),
    'radialSegments': ('radial_segments', int),
    'heightSegments': ('height_segments', int),
    'amplitudeGain': ('amplitude_gain', float),
    'noiseScale': ('noise_scale', float),
    'noiseIntensity': ('noise_intensity', float),
    'smoothingFactor': ('smoothing_factor', float),
}


def allowed_file(filename):
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def settings_from_form(form):
    """Build GenerationSettings from form fields; missing fields keep defaults"""
    values = {}
    for field, (attribute, cast) in SETTINGS_FIELDS.items():
        if form.get(field) not in (None, ''):
            values[attribute] = cast(form[field])

    if form.get('ribCount') not in (None, ''):
        values['ribs'] = RibSettings(
            count=int(form['ribCount']),
            depth=float(form.get('ribDepth', 1.0)),
            width=float(form.get('ribWidth', 0.5)),
        )

    return GenerationSettings(**values)


@app.route('/')
def index():
    """Describe the available endpoints"""
    return jsonify({
        'service': 'audio-vase',
        'endpoints': ['/upload', '/status/<id>', '/download/<id>', '/preview/<id>', '/cleanup'],
    })


@app.route('/upload', methods=['POST'])
def upload_file():
    """Handle audio (and optional base STL) upload and start conversion"""
    if 'audio' not in request.files:
        return jsonify({'error': 'No audio file provided'}), 400

    file = request.files['audio']
    if file.filename == '':
        return jsonify({'error': 'No file selected'}), 400

    if not allowed_file(file.filename):
        return jsonify({'error': 'Invalid file type. Please upload an audio file.'}), 400

    try:
        settings = settings_from_form(request.form)
        seed = int(request.form['seed']) if request.form.get('seed') else None
    except ValueError as e:
        return jsonify({'error': f'Invalid settings: {e}'}), 400

    os.makedirs(UPLOAD_FOLDER, exist_ok=True)
    os.makedirs(OUTPUT_FOLDER, exist_ok=True)

    # Generate unique ID for this conversion
    conversion_id = str(uuid.uuid4())

    # Save uploaded file
    filename = secure_filename(file.filename)
    file_path = os.path.join(UPLOAD_FOLDER, f"{conversion_id}_{filename}")
    file.save(file_path)

    base_bytes = None
    base = request.files.get('base')
    if base is not None and base.filename:
        base_bytes = base.read()

    conversion_status[conversion_id] = {
        'status': 'processing',
        'progress': 0,
        'message': 'Starting conversion...',
        'stl_file': None,
        'error': None,
        'created_time': time.time(),
    }

    # Start conversion in background thread
    thread = threading.Thread(target=convert_audio_background,
                              args=(conversion_id, file_path, file.filename, settings, seed, base_bytes))
    conversion_threads[conversion_id] = thread
    thread.start()

    return jsonify({
        'conversion_id': conversion_id,
        'message': 'Conversion started'
    })


def convert_audio_background(conversion_id, file_path, original_filename, settings, seed=None, base_bytes=None):
    """Background conversion process"""
    status = conversion_status[conversion_id]
    try:
        status['message'] = 'Analysing audio...'
        status['progress'] = 10

        name_without_ext = os.path.splitext(secure_filename(original_filename))[0]
        words = name_without_ext.split('_')[:2]
        output_name = f"{'_'.join(words) if words[0] else 'audio'}_{conversion_id[:8]}"

        converter = AudioVaseConverter(file_path, output_name, settings=settings, seed=seed)
        converter.load_and_analyze_audio()

        status['message'] = 'Shaping vase...'
        status['progress'] = 50

        mesh = converter.generate_mesh()
        mesh = converter.attach_base(mesh, base_bytes)

        output_filename = f"{output_name}.stl"
        save_stl(mesh, os.path.join(OUTPUT_FOLDER, output_filename))

        status['status'] = 'completed'
        status['progress'] = 100
        status['message'] = 'Conversion completed successfully!'
        status['stl_file'] = output_filename
        status['noise_seed'] = converter.noise_field.seed
        status['preview'] = mesh_to_threejs_json(mesh)
        status['mesh_info'] = get_mesh_info(mesh)
        print(f"Conversion {conversion_id} finished: {output_filename}")

    except Exception as e:
        status['status'] = 'error'
        status['error'] = str(e)
        status['message'] = f'Conversion failed: {e}'
        print(f"Conversion {conversion_id} failed: {e}")

    finally:
        # Clean up uploaded file
        if os.path.exists(file_path):
            os.remove(file_path)


def _completed_status(conversion_id):
    if conversion_id not in conversion_status:
        return None, (jsonify({'error': 'Invalid conversion ID'}), 404)

    status = conversion_status[conversion_id]
    if status['status'] != 'completed' or not status['stl_file']:
        return None, (jsonify({'error': 'File not ready'}), 400)

    return status, None


@app.route('/status/<conversion_id>')
def get_status(conversion_id):
    """Get conversion status"""
    if conversion_id not in conversion_status:
        return jsonify({'error': 'Invalid conversion ID'}), 404

    status = conversion_status[conversion_id]
    return jsonify({key: value for key, value in status.items() if key != 'preview'})


@app.route('/download/<conversion_id>')
def download_file(conversion_id):
    """Download the generated STL file"""
    status, error = _completed_status(conversion_id)
    if error:
        return error

    file_path = os.path.join(OUTPUT_FOLDER, status['stl_file'])
    if not os.path.exists(file_path):
        return jsonify({'error': 'File not found'}), 404

    return send_file(os.path.abspath(file_path), as_attachment=True,
                     download_name=f"audio_vase_{conversion_id}.stl")


@app.route('/preview/<conversion_id>')
def serve_preview_data(conversion_id):
    """Serve 3D preview data (Three.js JSON format)"""
    status, error = _completed_status(conversion_id)
    if error:
        return error

    preview_data = dict(status['preview'])
    preview_data['mesh_info'] = status.get('mesh_info', {})
    return jsonify(preview_data)


@app.route('/cleanup')
def cleanup_old_files():
    """Clean up old conversion files"""
    current_time = time.time()

    to_remove = [conv_id for conv_id, status in conversion_status.items()
                 if current_time - status.get('created_time', current_time) > MAX_AGE_SECONDS]

    for conv_id in to_remove:
        stl_file = conversion_status[conv_id].get('stl_file')
        if stl_file:
            file_path = os.path.join(OUTPUT_FOLDER, stl_file)
            if os.path.exists(file_path):
                os.remove(file_path)
        del conversion_status[conv_id]
        conversion_threads.pop(conv_id, None)

    return jsonify({'message': f'Cleaned up {len(to_remove)} old conversions'})


if __name__ == '__main__':
    print("🏺 Audio Vase Generator Server")
    print("=" * 40)
    print("Starting server on http://localhost:8080")
    print("Upload audio files to generate printable vases!")
    print("=" * 40)

    app.run(debug=True, host='0.0.0.0', port=8080)

#!/usr/bin/env python3
"""
VisionAI Eyewear Stylist - Web Application
Flask server with WebSocket support for busy-state updates
"""

import os
import traceback
from flask import Flask, request, jsonify, render_template, session as flask_session
from flask_socketio import SocketIO, emit, join_room
from flask_cors import CORS
from werkzeug.exceptions import RequestEntityTooLarge
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from services.image_converter import validate_and_prepare_image
from services.session_manager import get_session_manager
from services.stylist_controller import (
    StylistController,
    ValidationError,
    BusyError,
    GenerationFailedError,
)
from services.views import ConversationView, comparison_from_snapshot
from models.schemas import Mode, UploadedImage

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 20 * 1024 * 1024  # 20MB per upload
app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'eyewear-stylist-secret-key-change-in-production')

# Enable CORS
CORS(app)

# Initialize SocketIO
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

session_manager = get_session_manager()

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'webp', 'heic', 'heif'}


def allowed_file(filename):
    """Check if file extension is allowed"""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def emit_busy(session_id: str, busy: bool):
    """Push the busy flag to every page open on this session"""
    socketio.emit('busy', {'session_id': session_id, 'busy': busy}, room=session_id)


def build_controller(session_id: str) -> StylistController:
    return StylistController(on_busy_change=lambda busy: emit_busy(session_id, busy))


session_manager.controller_factory = build_controller


def request_session_id():
    """Session id from header, form or JSON body"""
    session_id = request.headers.get('X-Session-ID', '').strip()
    if not session_id:
        session_id = request.form.get('session_id', '').strip()
    if not session_id and request.is_json:
        session_id = str((request.get_json(silent=True) or {}).get('session_id', '')).strip()
    return session_id or None


def current_session():
    """Resolve the stylist session, remembering it in the signed cookie"""
    session_id = request_session_id() or flask_session.get('stylist_session_id')
    session, is_new = session_manager.get_or_create_session(session_id)
    if is_new:
        print(f"New stylist session: {session.session_id}")
    flask_session['stylist_session_id'] = session.session_id
    return session


def state_response(session, status=200, **extra):
    payload = {
        'success': status < 400,
        'session_id': session.session_id,
        'state': session.controller.snapshot(),
    }
    payload.update(extra)
    return jsonify(payload), status


def json_text(field='text'):
    data = request.get_json(silent=True) or {}
    return str(data.get(field) or request.form.get(field, ''))


@app.errorhandler(RequestEntityTooLarge)
def handle_too_large(e):
    return jsonify({'error': 'Image too large (max 20MB)'}), 413


@app.route('/')
def index():
    """Serve the main page"""
    session = current_session()
    snapshot = session.controller.snapshot()
    return render_template(
        'index.html',
        session_id=session.session_id,
        state=snapshot,
        comparison=comparison_from_snapshot(snapshot),
        conversation=ConversationView.from_snapshot(snapshot),
        modes=[m.value for m in Mode],
    )


@app.route('/api/state', methods=['GET'])
def get_state():
    """Current snapshot of the session's stylist state"""
    return state_response(current_session())


@app.route('/api/mode', methods=['POST'])
def set_mode():
    """Switch between CONSULTANT and TRY_ON"""
    session = current_session()
    mode = json_text('mode').strip().upper()
    try:
        session.controller.set_mode(mode)
    except ValueError:
        return state_response(session, 400, error=f'Unknown mode: {mode}')
    return state_response(session)


def _handle_upload(kind):
    session = current_session()

    if 'image' not in request.files:
        return state_response(session, 400, error='No image provided')

    image_file = request.files['image']
    if not image_file or not image_file.filename:
        return state_response(session, 400, error='Invalid image')
    if not allowed_file(image_file.filename):
        return state_response(session, 400, error=f'Unsupported file type: {image_file.filename}')

    image_bytes = image_file.read()
    try:
        payload = validate_and_prepare_image(image_bytes, image_file.filename)
    except ValueError as e:
        return state_response(session, 400, error=str(e))

    if kind == 'subject':
        session.controller.upload_subject_image(payload)
    else:
        session.controller.upload_reference_image(payload)

    uploaded = UploadedImage(
        original_filename=image_file.filename,
        mime_type=payload.mime_type,
        file_size=len(payload.data),
        image_type=kind,
    )
    print(f"  ✓ {kind} image uploaded: {image_file.filename} ({payload.mime_type})")
    return state_response(session, upload=uploaded.to_dict())


@app.route('/api/upload/subject', methods=['POST'])
def upload_subject():
    """Upload the face photo (clears any previous result)"""
    return _handle_upload('subject')


@app.route('/api/upload/reference', methods=['POST'])
def upload_reference():
    """Upload the glasses photo used in try-on mode"""
    return _handle_upload('reference')


@app.route('/api/generate', methods=['POST'])
def generate():
    """Initial generation for the current mode"""
    session = current_session()
    try:
        session.controller.generate()
    except ValidationError as e:
        return state_response(session, 400, error=e.message)
    except BusyError as e:
        return state_response(session, 409, error=e.message)
    except GenerationFailedError as e:
        return state_response(session, 502, error=e.message)
    except Exception as e:
        print(f"Error in generate: {e}")
        traceback.print_exc()
        return state_response(session, 500, error=f'Server error: {str(e)}')
    return state_response(session)


@app.route('/api/chat', methods=['POST'])
def chat():
    """Send a chat message to the consultant"""
    session = current_session()
    try:
        session.controller.send_chat_message(json_text())
    except ValidationError as e:
        return state_response(session, 400, error=e.message)
    except BusyError as e:
        return state_response(session, 409, error=e.message)
    except Exception as e:
        print(f"Error in chat: {e}")
        traceback.print_exc()
        return state_response(session, 500, error=f'Server error: {str(e)}')
    return state_response(session)


@app.route('/api/visualize', methods=['POST'])
def visualize():
    """Regenerate the image from a chat instruction"""
    session = current_session()
    try:
        session.controller.request_visualization(json_text())
    except ValidationError as e:
        return state_response(session, 400, error=e.message)
    except BusyError as e:
        return state_response(session, 409, error=e.message)
    except Exception as e:
        print(f"Error in visualize: {e}")
        traceback.print_exc()
        return state_response(session, 500, error=f'Server error: {str(e)}')
    return state_response(session)


@app.route('/api/reset', methods=['POST'])
def reset():
    """Start over: drop images, result and conversation"""
    session = current_session()
    session.controller.reset()
    return state_response(session)


@app.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'active_sessions': session_manager.get_session_count()
    })


# WebSocket event handlers
@socketio.on('connect')
def handle_connect():
    """Handle client connection"""
    print(f"Client connected: {request.sid}")
    emit('connected', {'sid': request.sid})


@socketio.on('join')
def handle_join(data):
    """Subscribe the socket to busy updates for a stylist session"""
    session_id = (data or {}).get('session_id')
    if session_id:
        join_room(session_id)
        emit('joined', {'session_id': session_id})


@socketio.on('disconnect')
def handle_disconnect():
    """Handle client disconnection"""
    print(f"Client disconnected: {request.sid}")


if __name__ == '__main__':
    if not (os.getenv("GOOGLE_API_KEY") or os.getenv("API_KEY")):
        print("❌ Error: Missing required environment variable:")
        print("   - GOOGLE_API_KEY")
        print("\nPlease set it in your .env file.")
        exit(1)

    port = int(os.getenv('PORT', 5001))
    print("🚀 Starting VisionAI Eyewear Stylist with WebSocket support...")
    print(f"📱 Open http://localhost:{port} in your browser")

    socketio.run(app, debug=True, host='0.0.0.0', port=port, allow_unsafe_werkzeug=True)

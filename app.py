import shutil
import tempfile
import threading
import uuid
from pathlib import Path
from flask import Flask, request, jsonify
# Import flask-cors
from flask_cors import CORS

from batch_tuner import config
from batch_tuner.autotuner import optimal_load, optimize
from batch_tuner.chunked_io import process_batch
from batch_tuner.tuning_state import TuningState, is_remote, normalize_kinds

# --- One tuning state per opened file, guarded by its own lock ---
SESSIONS = {}
SESSIONS_LOCK = threading.Lock()

# Create the Flask web application
app = Flask(__name__)

# --- Initialize CORS on your app ---
CORS(app)


class Session:
    __slots__ = ("path", "state", "lock", "scratch")

    def __init__(self, path, state):
        self.path = path
        self.state = state
        self.lock = threading.Lock()
        # Timed writes yahan jaate hain, asli file ko kabhi nahi chhoote
        self.scratch = Path(tempfile.mkdtemp()) / "scratch.bin"

    def cleanup(self):
        try:
            shutil.rmtree(self.scratch.parent)
        except OSError as e:
            print(f"Error cleaning up scratch dir: {e}")


def _get_session(session_id):
    with SESSIONS_LOCK:
        return SESSIONS.get(session_id)


def _body() -> dict:
    return request.get_json(silent=True) or {}


@app.errorhandler(ValueError)
def handle_value_error(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(KeyError)
def handle_key_error(e):
    return jsonify({"error": f"missing field {e.args[0]!r}"}), 400


# --- API Routes ---

@app.route('/api/settings')
def get_settings():
    """Machine-derived defaults new sessions start from."""
    max_batch = config.default_max_batch_size()
    return jsonify({
        "mode": config.default_mode(),
        "batch_size": config.DEFAULT_BATCH_SIZE,
        "max_batch_size": max_batch,
        "step_size": config.default_step_size(max_batch),
        "load_time": config.default_load_time(),
    })


@app.route('/api/sessions', methods=['POST'])
def create_session():
    data = _body()
    path = data.get("path")
    if not path:
        return jsonify({"error": "Missing path"}), 400
    # Directory ya device nahi chalega, sirf regular file
    if not is_remote(path) and Path(path).exists() and not Path(path).is_file():
        return jsonify({"error": f"Not a regular file: {path}"}), 400
    try:
        state = TuningState.for_path(
            path,
            mode=data.get("mode"),
            batch_size=data.get("batch_size"),
            max_batch_size=data.get("max_batch_size"),
            step_size=data.get("step_size"),
        )
    except FileNotFoundError:
        return jsonify({"error": f"File not found: {path}"}), 400

    session_id = str(uuid.uuid4())
    with SESSIONS_LOCK:
        SESSIONS[session_id] = Session(path, state)
    print(f"--- Session {session_id} opened for {path} ({state.resource_size} bytes) ---")
    return jsonify({"session_id": session_id, **state.stats()}), 201


@app.route('/api/sessions/<session_id>', methods=['GET'])
def get_session(session_id):
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404
    with session.lock:
        return jsonify({"session_id": session_id, "path": str(session.path), **session.state.stats()})


@app.route('/api/sessions/<session_id>', methods=['DELETE'])
def close_session(session_id):
    with SESSIONS_LOCK:
        session = SESSIONS.pop(session_id, None)
    if not session:
        return jsonify({"error": "Session not found"}), 404
    session.cleanup()
    print(f"--- Session {session_id} closed ---")
    return jsonify({"session_id": session_id, "closed": True})


@app.route('/api/sessions/<session_id>/record', methods=['POST'])
def record_sample(session_id):
    """Feed one (kind, size, elapsed) sample measured by the client."""
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404
    data = _body()
    size = int(data["size"])
    elapsed = float(data["elapsed"])
    if elapsed <= 0:
        return jsonify({"error": "elapsed must be positive"}), 400
    if size < 0:
        return jsonify({"error": "size can't be negative"}), 400
    with session.lock:
        session.state.record(data["kind"], size, elapsed)
        return jsonify({"batch_size": session.state.batch_size})


@app.route('/api/sessions/<session_id>/read', methods=['POST'])
def read_batch(session_id):
    """
    Do one timed batch at the live batch size, starting at `start`.
    Timed writes go to the session's scratch file, never to the tuned file.
    """
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404
    data = _body()
    start = int(data.get("start", 0))
    kinds = data.get("kinds") or ["insert"]
    if session.state.remote:
        return jsonify({"error": "Remote resources can't be read by the service"}), 400
    try:
        with session.lock:
            batch = session.state.batch_size
            end = process_batch(session.state, Path(session.path), start, kinds, scratch=session.scratch)
        return jsonify({"start": start, "end": end, "batch_size": batch})
    except ValueError:
        raise
    except Exception as e:
        print(f"Read failed: {e}")
        return jsonify({"error": str(e)}), 500


@app.route('/api/sessions/<session_id>/optimize', methods=['POST'])
def optimize_session(session_id):
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "Session not found"}), 404
    data = _body()
    kinds = normalize_kinds(data.get("kinds") or ["insert"])
    try:
        with session.lock:
            old = session.state.batch_size
            new = optimize(session.state, kinds, bool(data.get("linear", False)))
            load = optimal_load(session.state, kinds)
    except ValueError:
        raise
    except Exception as e:
        print(f"Optimize failed: {e}")
        return jsonify({"error": str(e)}), 500
    if new != old:
        print(f"  [TUNE] {session_id}: {old} -> {new} bytes")
    return jsonify({"previous": old, "batch_size": new, "optimal_load": load})


if __name__ == '__main__':
    app.run(debug=True, port=5000)

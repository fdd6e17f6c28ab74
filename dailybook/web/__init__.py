"""
Flask Application - JSON endpoints over the ledger engine
"""
import logging
import threading
from collections import OrderedDict
from datetime import datetime
from functools import wraps
from typing import Optional

from flask import Flask, request, session, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from dotenv import load_dotenv

from dailybook.api_client import BackendClient
from dailybook.core.cache import ReadModelCache
from dailybook.core.config import settings
from dailybook.core.exceptions import (
    LedgerError, NetworkFailure, PartialBatchFailure, VALIDATION_ERRORS
)
from dailybook.core.formatting import format_currency
from dailybook.services.junction_service import JunctionService
from dailybook.services.submission_service import SentKeys, TransactionSubmissionService

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings.validate_security_settings()

# Initialize app
app = Flask(__name__)
app.secret_key = settings.SECRET_KEY
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# CSRF Protection - token travels in a header for JSON clients
app.config['WTF_CSRF_HEADERS'] = ['X-CSRFToken', 'X-CSRF-Token']
app.config['WTF_CSRF_TIME_LIMIT'] = None
csrf = CSRFProtect(app)


class UserState:
    """Read models and posted idempotency keys of one logged-in user"""

    def __init__(self):
        self.cache = ReadModelCache()
        self.sent_keys = SentKeys()


# Least recently used users are evicted past settings.MAX_CACHED_USERS
_user_states: "OrderedDict[str, UserState]" = OrderedDict()
_user_states_lock = threading.Lock()


# ==================== HELPERS ====================

def _store_tokens(access_token, refresh_token):
    session['access_token'] = access_token
    session['refresh_token'] = refresh_token


def get_client() -> BackendClient:
    """Backend client carrying the session's tokens"""
    return BackendClient(
        access_token=session.get('access_token'),
        refresh_token=session.get('refresh_token'),
        on_tokens=_store_tokens,
    )


def _user_key() -> str:
    return str(session.get('user_id') or session.get('username') or 'anonymous')


def get_user_state() -> UserState:
    key = _user_key()
    with _user_states_lock:
        state = _user_states.get(key)
        if state is not None:
            _user_states.move_to_end(key)
            return state
        state = _user_states[key] = UserState()
        while len(_user_states) > max(settings.MAX_CACHED_USERS, 1):
            evicted, _ = _user_states.popitem(last=False)
            logger.info(f"Evicted cached state for user {evicted}")
        return state


def get_cache() -> ReadModelCache:
    return get_user_state().cache


def drop_cache():
    with _user_states_lock:
        _user_states.pop(_user_key(), None)


def get_submission_service() -> TransactionSubmissionService:
    state = get_user_state()
    return TransactionSubmissionService(
        get_client(), cache=state.cache, user_id=session.get('user_id'), sent_keys=state.sent_keys
    )


def get_junction_service() -> JunctionService:
    return JunctionService(get_client(), cache=get_cache())


def idempotency_key(data: Optional[dict] = None) -> Optional[str]:
    """Key sent by the client in the Idempotency-Key header or the body"""
    key = request.headers.get('Idempotency-Key')
    if not key and data:
        key = data.get('idempotency_key')
    return key or None


def request_data() -> dict:
    """JSON body or form fields"""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def login_required(f):
    """Decorator to require login"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'access_token' not in session:
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


@app.template_filter('currency')
def currency_filter(value, decimals=2):
    """Format number as PKR (`Rs 5,000.00`)"""
    return format_currency(value, decimals=decimals)


@app.context_processor
def inject_globals():
    return {
        'app_name': settings.APP_NAME,
        'current_year': datetime.now().year,
    }


# ==================== ERROR HANDLERS ====================

@app.errorhandler(LedgerError)
def ledger_error(error):
    if isinstance(error, PartialBatchFailure):
        return jsonify({
            'error': error.message,
            'result': error.result.model_dump(mode='json'),
        }), 502
    if isinstance(error, NetworkFailure):
        return jsonify({'error': error.message or 'Something went wrong, please try again'}), 502
    if isinstance(error, VALIDATION_ERRORS):
        return jsonify({'error': error.message}), 400
    return jsonify({'error': error.message}), 502


@app.errorhandler(ValueError)
def bad_value(error):
    return jsonify({'error': str(error)}), 400


@app.errorhandler(CSRFError)
def csrf_error(error):
    return jsonify({'error': error.description}), 400


@app.errorhandler(404)
def not_found(error):
    return jsonify({'error': 'Not found'}), 404


@app.errorhandler(500)
def server_error(error):
    logger.error(f"Unhandled error: {error}", exc_info=True)
    return jsonify({'error': 'Something went wrong, please try again'}), 500


# ==================== REGISTER BLUEPRINTS ====================

from dailybook.web.views import auth, dailybooks, internal_operations, associations  # noqa: E402

app.register_blueprint(auth.bp)
app.register_blueprint(dailybooks.bp)
app.register_blueprint(internal_operations.bp)
app.register_blueprint(associations.bp)


# ==================== MAIN ROUTES ====================

@app.route('/')
def index():
    """Root route"""
    return jsonify({
        'app': settings.APP_NAME,
        'version': settings.APP_VERSION,
        'authenticated': 'access_token' in session,
    })

# juryportal/routes.py

# JSON endpoints for jurors and administrators.
# Every view answers with {"status": ...}; expected failures (bad credentials,
# malformed input) propagate as JuryError to the app's error handlers, anything
# unexpected is audited here and turned into a structured 500.

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from juryportal import limiter
from juryportal.audit.audit_logger import AuditEvent
from juryportal.authentication.guards import require_admin_password, require_api_secret
from juryportal.errors import JuryError, MalformedInput
from juryportal.operations.health_monitor import check_health
from juryportal.services import get_services

bp = Blueprint('jury', __name__)


def _json_body():
    data = request.get_json(silent=True)
    return data if data is not None else {}


def _internal_error(action, err, juror_id=None):
    current_app.logger.exception(f"{action} failed")
    get_services().audit_logger.log_event(AuditEvent.REQUEST_ERROR, {'action': action, 'error': str(err)}, juror_id)
    return jsonify({'status': 'error', 'message': f'{action} failed'}), 500


# ── PIN issuance (shared API secret) ─────────────────────────

@bp.route('/api/pin/issue', methods=['POST'])
@limiter.limit("30/minute")
@require_api_secret
def issue_pin():
    svc = get_services()
    juror_id = None
    try:
        data = _json_body()
        juror_id = svc.validator.resolve_juror_id(data)
        name = svc.validator.sanitize_string(data.get('name'))
        dept = svc.validator.sanitize_string(data.get('dept'))
        result = svc.pins.issue(juror_id, name, dept)
        if result['locked']:
            svc.audit_logger.log_event(AuditEvent.PIN_ISSUE_REFUSED, {'reason': 'locked'}, juror_id)
            return jsonify({'status': 'ok', 'jurorId': juror_id, 'locked': True})
        svc.audit_logger.log_event(AuditEvent.PIN_ISSUED, {'created': result['created']}, juror_id)
        return jsonify({
            'status': 'ok',
            'jurorId': juror_id,
            'pin': result['pin'],
            'token': result['token'],
            'created': result['created'],
            'locked': False,
        })
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('issuePin', e, juror_id)


@bp.route('/api/pin/exists', methods=['GET'])
@require_api_secret
def check_pin_exists():
    svc = get_services()
    try:
        juror_id = svc.validator.resolve_juror_id(request.args.to_dict())
        return jsonify({'status': 'ok', 'jurorId': juror_id, 'exists': svc.pins.exists(juror_id)})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('checkPinExists', e)


@bp.route('/api/pin/verify', methods=['POST'])
@limiter.limit("20/minute")
@require_api_secret
def verify_pin():
    svc = get_services()
    juror_id = None
    try:
        data = _json_body()
        juror_id = svc.validator.resolve_juror_id(data)
        pin = data.get('pin')
        candidate = pin if isinstance(pin, str) else str(pin if pin is not None else '')
        well_formed = svc.validator.validate_pin(candidate)
        result = svc.pins.verify(juror_id, candidate, well_formed=well_formed)
        if result['valid']:
            svc.audit_logger.log_event(AuditEvent.PIN_VERIFIED, {'ip': request.remote_addr}, juror_id)
        elif result['locked']:
            svc.audit_logger.log_event(AuditEvent.ACCOUNT_LOCKED, {'ip': request.remote_addr}, juror_id)
        else:
            svc.audit_logger.log_event(AuditEvent.PIN_FAILED, {
                'ip': request.remote_addr,
                'attemptsLeft': result['attemptsLeft'],
                'malformed': not well_formed,
            }, juror_id)
        return jsonify({'status': 'ok', 'jurorId': juror_id, **result})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('verifyPin', e, juror_id)


# ── Administrative overrides (admin password) ────────────────

@bp.route('/api/admin/reset-pin', methods=['POST'])
@require_admin_password
def admin_reset_pin():
    svc = get_services()
    juror_id = None
    try:
        juror_id = svc.validator.resolve_juror_id(_json_body())
        svc.pins.clear(juror_id)
        svc.audit_logger.log_event(AuditEvent.PIN_RESET, {'ip': request.remote_addr}, juror_id)
        return jsonify({'status': 'ok', 'message': f'PIN cleared for {juror_id}'})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('adminResetPin', e, juror_id)


@bp.route('/api/admin/clear-account', methods=['POST'])
@require_admin_password
def admin_clear_account():
    svc = get_services()
    juror_id = None
    try:
        juror_id = svc.validator.resolve_juror_id(_json_body())
        svc.pins.erase(juror_id)
        svc.audit_logger.log_event(AuditEvent.ACCOUNT_CLEARED, {'ip': request.remote_addr}, juror_id)
        return jsonify({'status': 'ok', 'message': f'Account cleared for {juror_id}'})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('adminClearAccount', e, juror_id)


@bp.route('/api/admin/reset-window', methods=['POST'])
@require_admin_password
def admin_open_reset_window():
    svc = get_services()
    juror_id = None
    try:
        juror_id = svc.validator.resolve_juror_id(_json_body())
        reset = svc.reset_window.open(juror_id)
        svc.audit_logger.log_event(AuditEvent.RESET_WINDOW_OPENED, {'by': 'admin', 'reset': reset}, juror_id)
        return jsonify({'status': 'ok', 'reset': reset})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('adminOpenResetWindow', e, juror_id)


@bp.route('/api/admin/export', methods=['GET'])
@require_admin_password
def admin_export():
    svc = get_services()
    try:
        return jsonify({'status': 'ok', 'rows': svc.evaluations.export_all()})
    except Exception as e:
        return _internal_error('adminExport', e)


# ── Drafts (bearer token) ────────────────────────────────────

@bp.route('/api/draft', methods=['PUT'])
@jwt_required()
def save_draft():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        data = _json_body()
        if not isinstance(data, dict):
            raise MalformedInput("Request body must be a JSON object")
        payload = svc.validator.validate_draft_payload(data.get('draft'))
        updated_at = svc.drafts.save(juror_id, payload)
        svc.audit_logger.log_event(AuditEvent.DRAFT_SAVED, {}, juror_id)
        return jsonify({'status': 'ok', 'updatedAt': updated_at.isoformat()})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('saveDraft', e, juror_id)


@bp.route('/api/draft', methods=['GET'])
@jwt_required()
def load_draft():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        found = svc.drafts.load(juror_id)
        if found is None:
            return jsonify({'status': 'not_found'})
        payload, updated_at = found
        return jsonify({
            'status': 'ok',
            'draft': payload,
            'updatedAt': updated_at.isoformat() if updated_at else None,
        })
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('loadDraft', e, juror_id)


@bp.route('/api/draft', methods=['DELETE'])
@jwt_required()
def delete_draft():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        deleted = svc.drafts.delete(juror_id)
        if deleted:
            svc.audit_logger.log_event(AuditEvent.DRAFT_DELETED, {}, juror_id)
        return jsonify({'status': 'ok'})
    except Exception as e:
        return _internal_error('deleteDraft', e, juror_id)


@bp.route('/api/juror-data', methods=['DELETE'])
@jwt_required()
def delete_juror_data():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        svc.drafts.delete(juror_id)
        deleted = svc.evaluations.delete_juror_rows(juror_id)
        svc.audit_logger.log_event(AuditEvent.JUROR_DATA_DELETED, {'deleted': deleted}, juror_id)
        return jsonify({'status': 'ok', 'deleted': deleted})
    except Exception as e:
        return _internal_error('deleteJurorData', e, juror_id)


# ── Evaluations (bearer token) ───────────────────────────────

@bp.route('/api/reset-window', methods=['POST'])
@jwt_required()
def open_reset_window():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        reset = svc.reset_window.open(juror_id)
        svc.audit_logger.log_event(AuditEvent.RESET_WINDOW_OPENED, {'by': 'juror', 'reset': reset}, juror_id)
        return jsonify({'status': 'ok', 'reset': reset})
    except Exception as e:
        return _internal_error('openResetWindow', e, juror_id)


@bp.route('/api/scores', methods=['POST'])
@jwt_required()
def submit_scores():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        data = _json_body()
        if not isinstance(data, dict):
            raise MalformedInput("Request body must be a JSON object")
        rows = svc.validator.validate_score_rows(data.get('rows', []))
        result = svc.evaluations.submit(juror_id, rows)
        svc.audit_logger.log_event(AuditEvent.SCORES_SUBMITTED, {
            'updated': result['updated'],
            'added': result['added'],
            'stale': result['stale'],
            'clamped': result['clamped'],
        }, juror_id)
        if result['clamped']:
            svc.audit_logger.log_event(AuditEvent.REGRESSION_IGNORED, {'groups': result['clampedGroups']}, juror_id)
        return jsonify({'status': 'ok', **result})
    except JuryError:
        raise
    except Exception as e:
        return _internal_error('submitScores', e, juror_id)


@bp.route('/api/scores', methods=['GET'])
@jwt_required()
def list_my_scores():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        return jsonify({'status': 'ok', 'rows': svc.evaluations.list_my_scores(juror_id)})
    except Exception as e:
        return _internal_error('listMyScores', e, juror_id)


@bp.route('/api/scores/finalized-count', methods=['GET'])
@jwt_required()
def count_finalized():
    svc = get_services()
    juror_id = get_jwt_identity()
    try:
        return jsonify({'status': 'ok', 'submittedCount': svc.evaluations.count_finalized(juror_id)})
    except Exception as e:
        return _internal_error('countFinalized', e, juror_id)


# ── Operations ───────────────────────────────────────────────

@bp.route('/health', methods=['GET'])
def health():
    res = check_health(current_app.config['AUDIT_LOG_DIR'])
    code = 200 if res["overall_ok"] else 503
    return jsonify(res), code

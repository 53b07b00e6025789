"""
Survey Server - Flask API for property condition surveys
========================================================
Stores surveys as JSON documents under ``DATA_DIR`` and exports them as PDF.

Endpoints:
  - GET    /health
  - GET    /api/surveys
  - POST   /api/surveys
  - GET    /api/surveys/<survey_id>
  - PUT    /api/surveys/<survey_id>
  - DELETE /api/surveys/<survey_id>
  - GET    /api/surveys/<survey_id>/report
  - GET    /api/surveys/<survey_id>/layout
"""

from __future__ import annotations

import io
import logging
import traceback

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS
from pydantic import ValidationError

from surveyreport.config import get_settings
from surveyreport.errors import NotFoundError, RenderError
from surveyreport.report.layout import plan_survey_layout
from surveyreport.report.survey_report_pdf import CONTENT_TYPE, build_survey_report_pdf, report_filename
from surveyreport.state import create_survey, delete_survey, get_survey_or_raise, list_surveys, replace_survey
from surveyreport.storage import append_event


logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# App factory
# --------------------------------------------------------------------------- #


def _not_found():
    return jsonify({'error': 'Survey not found'}), 404


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


def create_app(*, fetcher=None) -> Flask:
    """Build the API app; ``fetcher`` overrides the photo fetcher used for reports."""
    app = Flask(__name__)
    CORS(app)

    @app.route('/health', methods=['GET'])
    def health():
        settings = get_settings()
        return jsonify({'status': 'healthy', 'service': settings.app_name}), 200

    @app.route('/api/surveys', methods=['GET'])
    def surveys_index():
        rows = [row.model_dump(mode='json', by_alias=True) for row in list_surveys()]
        return jsonify(rows), 200

    @app.route('/api/surveys', methods=['POST'])
    def surveys_create():
        data = _json_body()
        if data is None:
            return jsonify({'error': 'Invalid JSON request'}), 400
        try:
            survey = create_survey(data)
        except ValidationError as e:
            return jsonify({'error': str(e)}), 400
        logger.info('Created survey %s', survey.id)
        return jsonify(survey.wire()), 201

    @app.route('/api/surveys/<survey_id>', methods=['GET'])
    def surveys_show(survey_id: str):
        try:
            survey = get_survey_or_raise(survey_id)
        except NotFoundError:
            return _not_found()
        return jsonify(survey.wire()), 200

    @app.route('/api/surveys/<survey_id>', methods=['PUT'])
    def surveys_update(survey_id: str):
        data = _json_body()
        if data is None:
            return jsonify({'error': 'Invalid JSON request'}), 400
        try:
            survey = replace_survey(survey_id, data)
        except NotFoundError:
            return _not_found()
        except ValidationError as e:
            return jsonify({'error': str(e)}), 400
        return jsonify(survey.wire()), 200

    @app.route('/api/surveys/<survey_id>', methods=['DELETE'])
    def surveys_delete(survey_id: str):
        try:
            delete_survey(survey_id)
        except NotFoundError:
            return _not_found()
        return jsonify({'message': 'Survey deleted successfully'}), 200

    @app.route('/api/surveys/<survey_id>/layout', methods=['GET'])
    def surveys_layout(survey_id: str):
        try:
            survey = get_survey_or_raise(survey_id)
        except NotFoundError:
            return _not_found()
        return jsonify(plan_survey_layout(survey).to_dict()), 200

    @app.route('/api/surveys/<survey_id>/report', methods=['GET'])
    def surveys_report(survey_id: str):
        try:
            survey = get_survey_or_raise(survey_id)
        except NotFoundError:
            return _not_found()

        try:
            pdf_bytes = build_survey_report_pdf(survey, fetcher=fetcher)
        except RenderError as e:
            logger.error('Error in /report endpoint for %s: %s', survey_id, e)
            logger.error(traceback.format_exc())
            return jsonify({'error': 'Failed to generate report'}), 500

        append_event(survey.id, 'report_exported', bytes=len(pdf_bytes))
        return send_file(
            io.BytesIO(pdf_bytes),
            mimetype=CONTENT_TYPE,
            as_attachment=True,
            download_name=report_filename(survey),
        )

    return app


# --------------------------------------------------------------------------- #
# Entrypoint
# --------------------------------------------------------------------------- #


def run_server(host: str | None = None, port: int | None = None) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    bind_host = host or settings.server_host
    bind_port = int(port or settings.server_port)
    logger.info('=' * 70)
    logger.info('Starting survey server')
    logger.info('Server: http://%s:%s (data dir: %s)', bind_host, bind_port, settings.data_dir)
    logger.info('=' * 70)
    create_app().run(host=bind_host, port=bind_port, debug=False, threaded=True)


if __name__ == '__main__':
    run_server()

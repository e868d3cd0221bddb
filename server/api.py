"""
DocSearch Documents API

Flask blueprint over DocumentService:
- Upload and index a file
- Hybrid search with category/team/project filters
- Document detail, preview and file download
- Category/team/project facets

Usage:
    from server.api import documents_api
    app.register_blueprint(documents_api, url_prefix='/api/documents')
"""

import uuid
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.utils import secure_filename

from core.errors import InvalidRequestError

documents_api = Blueprint('documents_api', __name__)


def get_service():
    """The process-wide DocumentService attached by create_app."""
    return current_app.extensions['docsearch']


def get_upload_dir() -> Path:
    upload_dir = Path(get_service().settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


# =============================================================================
# Upload
# =============================================================================

@documents_api.route('/upload', methods=['POST'])
def upload():
    """
    Upload and index a document.

    Form fields:
        document: The file
        team: Owning team (optional, inferred from the file name)
        project: Project name (optional)
        category: Category (optional, auto-assigned)
        author: Author recorded in metadata (optional)
    """
    file = request.files.get('document')
    if file is None or not file.filename:
        raise InvalidRequestError('No file uploaded')

    filename = secure_filename(file.filename) or 'upload'
    file_path = get_upload_dir() / f"{uuid.uuid4().hex}_{filename}"
    file.save(str(file_path))

    document = get_service().upload(
        file_path=str(file_path),
        filename=file.filename,
        file_size=file_path.stat().st_size,
        team=request.form.get('team'),
        project=request.form.get('project'),
        category=request.form.get('category'),
        author=request.form.get('author'),
    )

    return jsonify({
        'message': 'Document uploaded and indexed successfully',
        'document': document
    }), 201


# =============================================================================
# Search Endpoints
# =============================================================================

@documents_api.route('/search')
def search():
    """
    Hybrid search.

    Query params:
        query: Search text (``q`` is accepted as a short alias)
        category: Filter by category
        team: Filter by team
        project: Filter by project
        limit: Maximum results (1-100, default 20)
    """
    query = request.args.get('query')
    if query is None:
        query = request.args.get('q', '')

    return jsonify(get_service().search(
        query=query,
        category=request.args.get('category') or None,
        team=request.args.get('team') or None,
        project=request.args.get('project') or None,
        limit=request.args.get('limit'),
    ))


@documents_api.route('/meta/categories')
def categories():
    """Category, team and project counts."""
    return jsonify(get_service().get_categories())


# =============================================================================
# Document Endpoints
# =============================================================================

@documents_api.route('/<doc_id>')
def get_document(doc_id):
    """Full document record."""
    return jsonify(get_service().get_document(doc_id))


@documents_api.route('/preview/<doc_id>')
def preview_document(doc_id):
    """Document summary plus its extracted text."""
    return jsonify(get_service().preview_document(doc_id))


@documents_api.route('/file/<doc_id>')
def download_file(doc_id):
    """Serve the stored upload inline."""
    info = get_service().get_file(doc_id)
    return send_file(
        info['path'],
        mimetype=info['content_type'],
        as_attachment=False,
        download_name=info['filename']
    )

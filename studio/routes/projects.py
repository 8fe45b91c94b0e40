from flask import Blueprint, g, jsonify, request

from studio.services import project_service
from studio.utils.auth import require_admin, require_client_or_admin
from studio.utils.request import json_body

projects_bp = Blueprint('projects', __name__)


@projects_bp.route('/projects', methods=['GET'])
@require_admin
def list_projects():
    """
    List projects
    GET /api/projects?status=in-progress&clientEmail=jane@example.com&page=1
    """
    result = project_service.list_projects(
        status=request.args.get('status'),
        client_email=request.args.get('clientEmail'),
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('perPage', type=int),
    )
    result['items'] = [project.to_dict() for project in result['items']]
    return jsonify({'success': True, **result}), 200


@projects_bp.route('/projects', methods=['POST'])
@require_admin
def create_project():
    """
    Create a project
    POST /api/projects
    Body: {
        "name": "Company website",
        "clientEmail": "jane@example.com",
        "description": "...", "priority": "high", "budget": "...",
        "startDate": "2024-01-15", "dueDate": "2024-03-01",
        "assignedTo": "...", "bookingId": 12
    }
    """
    project = project_service.create_project(json_body())
    return jsonify({'success': True, 'project': project.to_dict()}), 201


@projects_bp.route('/projects/<int:project_id>', methods=['GET'])
@require_admin
def get_project(project_id):
    project = project_service.get_project(project_id)
    return jsonify({'success': True, 'project': project.to_dict()}), 200


@projects_bp.route('/projects/<int:project_id>', methods=['PUT'])
@require_admin
def update_project(project_id):
    project = project_service.update_project(project_id, json_body())
    return jsonify({'success': True, 'project': project.to_dict()}), 200


@projects_bp.route('/projects/<int:project_id>/status', methods=['PUT'])
@require_admin
def change_status(project_id):
    """
    Change project status and/or progress
    PUT /api/projects/:id/status
    Body: {"status": "in-progress", "progress": 40, "note": "..."}

    Allowed transitions:
    - forward along planning -> in-progress -> testing -> completed
    - back one step for rework
    - any state -> on-hold; on-hold -> any state except completed
    """
    data = json_body()
    project, updates = project_service.change_status(
        project_id,
        status=data.get('status'),
        progress=data.get('progress'),
        note=data.get('note'),
    )
    return jsonify({
        'success': True,
        'project': project.to_dict(),
        'updates': [update.to_dict() for update in updates],
    }), 200


@projects_bp.route('/projects/<int:project_id>', methods=['DELETE'])
@require_admin
def delete_project(project_id):
    project_service.delete_project(project_id)
    return jsonify({'success': True, 'message': 'Project deleted'}), 200


@projects_bp.route('/projects/<int:project_id>/updates', methods=['GET'])
@require_client_or_admin
def list_updates(project_id):
    """Timeline; clients see client-visible entries only"""
    project = project_service.get_project_for(project_id, user=g.current_user, admin=g.current_admin)
    updates = project_service.list_updates(project, include_internal=g.current_admin is not None)
    return jsonify({'success': True, 'updates': [update.to_dict() for update in updates]}), 200


@projects_bp.route('/projects/<int:project_id>/updates', methods=['POST'])
@require_admin
def add_update(project_id):
    """
    Add a timeline note
    POST /api/projects/:id/updates
    Body: {"title": "...", "description": "...", "isClientVisible": true}
    """
    data = json_body()
    update = project_service.add_note(
        project_id,
        data.get('title'),
        description=data.get('description'),
        client_visible=bool(data.get('isClientVisible', True)),
    )
    return jsonify({'success': True, 'update': update.to_dict()}), 201


@projects_bp.route('/projects/<int:project_id>/messages', methods=['GET'])
@require_client_or_admin
def list_messages(project_id):
    project = project_service.get_project_for(project_id, user=g.current_user, admin=g.current_admin)
    messages = project_service.list_messages(project)
    return jsonify({'success': True, 'messages': [message.to_dict() for message in messages]}), 200


@projects_bp.route('/projects/<int:project_id>/messages', methods=['POST'])
@require_client_or_admin
def post_message(project_id):
    """
    Post a message on a project
    POST /api/projects/:id/messages
    Body: {"subject": "...", "message": "..."}
    """
    project = project_service.get_project_for(project_id, user=g.current_user, admin=g.current_admin)
    message = project_service.post_message(project, json_body(), user=g.current_user, admin=g.current_admin)
    return jsonify({'success': True, 'message': message.to_dict()}), 201


@projects_bp.route('/messages/<int:message_id>/read', methods=['PUT'])
@require_client_or_admin
def mark_message_read(message_id):
    message = project_service.mark_message_read(message_id, user=g.current_user, admin=g.current_admin)
    return jsonify({'success': True, 'message': message.to_dict()}), 200

from datetime import datetime

import jsonschema
from flask import Blueprint, request, jsonify, current_app
from flask_wtf.csrf import generate_csrf

from .extensions import db_session
from .models import Post, Comment
from .views import render_edit_timeout

posts_bp = Blueprint('posts', __name__)

BODY_SCHEMA = {
    'type': 'object',
    'properties': {
        'body': {'type': 'string', 'minLength': 1, 'maxLength': 10000},
        'author': {'type': 'string', 'minLength': 1, 'maxLength': 255},
    },
    'required': ['body'],
    'additionalProperties': False,
}

EDIT_SCHEMA = {
    'type': 'object',
    'properties': {
        'body': {'type': 'string', 'minLength': 1, 'maxLength': 10000},
    },
    'required': ['body'],
    'additionalProperties': False,
}

COMMENT_SCHEMA = {
    'type': 'object',
    'properties': {
        'body': {'type': 'string', 'minLength': 1, 'maxLength': 2000},
    },
    'required': ['body'],
    'additionalProperties': False,
}


def _validated_body(schema=BODY_SCHEMA):
    data = request.get_json(silent=True) or {}
    jsonschema.validate(instance=data, schema=schema)
    return data


def _deny_edit(record):
    def notify(message):
        current_app.logger.info('edit: window expired',
                                extra={'model': type(record).__name__, 'record_id': record.id})
        render_edit_timeout(message)
    return notify


@posts_bp.errorhandler(jsonschema.ValidationError)
def _validation_error(ve):
    return jsonify({'error': 'validation error', 'details': ve.message}), 400


@posts_bp.route('/posts', methods=['POST'])
def create_post():
    data = _validated_body()
    sess = db_session()
    post = Post(body=data['body'], author=data.get('author', 'anonymous'))
    sess.add(post)
    sess.commit()
    return jsonify(post.to_dict()), 201


@posts_bp.route('/posts/<int:post_id>', methods=['GET'])
def get_post(post_id: int):
    post = db_session().get(Post, post_id)
    if not post:
        return jsonify({'error': 'not found'}), 404
    return jsonify(post.to_dict()), 200


@posts_bp.route('/posts/<int:post_id>', methods=['PATCH'])
def edit_post(post_id: int):
    sess = db_session()
    post = sess.get(Post, post_id)
    if not post:
        return jsonify({'error': 'not found'}), 404
    data = _validated_body(EDIT_SCHEMA)

    post.disallow_edit_if_expired(_deny_edit(post))

    post.body = data['body']
    post.updated_on = datetime.utcnow()
    sess.add(post)
    sess.commit()
    current_app.logger.info('edit: success', extra={'model': 'Post', 'record_id': post.id})
    return jsonify(post.to_dict()), 200


@posts_bp.route('/posts/<int:post_id>/comments', methods=['POST'])
def create_comment(post_id: int):
    sess = db_session()
    post = sess.get(Post, post_id)
    if not post:
        return jsonify({'error': 'not found'}), 404
    data = _validated_body(COMMENT_SCHEMA)
    comment = Comment(post_id=post.id, body=data['body'])
    sess.add(comment)
    sess.commit()
    return jsonify(comment.to_dict()), 201


@posts_bp.route('/comments/<int:comment_id>', methods=['PATCH'])
def edit_comment(comment_id: int):
    sess = db_session()
    comment = sess.get(Comment, comment_id)
    if not comment:
        return jsonify({'error': 'not found'}), 404
    data = _validated_body(COMMENT_SCHEMA)

    comment.disallow_edit_if_expired(_deny_edit(comment))

    comment.body = data['body']
    sess.add(comment)
    sess.commit()
    current_app.logger.info('edit: success', extra={'model': 'Comment', 'record_id': comment.id})
    return jsonify(comment.to_dict()), 200


@posts_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    # Return a fresh CSRF token for API clients/tests
    return jsonify({'csrf_token': generate_csrf()}), 200

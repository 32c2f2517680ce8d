"""Tests for the model integration of the edit window."""

import logging
import time
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest
from werkzeug.exceptions import HTTPException

from editwindow import create_app
from editwindow.edit_window import DEFAULT_DENIED_MESSAGE, EditWindowPolicy
from editwindow.models import Comment, Post


@pytest.fixture
def ctx(app):
    with app.test_request_context():
        yield app


def old_post(hours):
    return Post(body='hello', created_on=datetime.utcnow() - timedelta(hours=hours))


class TestLimitedEditMixin:

    def test_fields_are_mapped_columns(self, ctx):
        post = old_post(0)
        assert post.has_field('created_on')
        assert post.has_field('body')
        assert not post.has_field('to_dict')
        assert not post.has_field('comments')
        assert not post.has_field('edit_window_policy')
        assert post.get_field('body') == 'hello'

    def test_uses_app_policy(self, ctx):
        assert old_post(0)._edit_window() is ctx.extensions['edit_window']

    def test_fresh_post_is_editable(self, ctx):
        assert old_post(0).is_edit_allowed() is True

    def test_old_post_is_not_editable(self, ctx):
        assert old_post(2).is_edit_allowed() is False

    def test_seconds_remaining(self, ctx):
        remaining = old_post(0).edit_seconds_remaining()
        assert 3590 <= remaining <= 3600
        assert old_post(2).edit_seconds_remaining() == 0

    def test_missing_column_is_fail_open(self, ctx, caplog):
        caplog.set_level(logging.ERROR)
        post = old_post(2)
        post.published_on = datetime.utcnow() - timedelta(hours=2)
        policy = EditWindowPolicy(created_at_attribute='published_on', logger=ctx.logger)
        post.edit_window_policy = policy
        assert post.is_edit_allowed() is True
        assert any('published_on' in r.getMessage() and 'Post' in r.getMessage()
                   for r in caplog.records)

    def test_unset_created_on_is_fail_open(self, ctx):
        # transient instances have no column defaults applied yet
        assert Post(body='draft').is_edit_allowed() is True

    def test_disallow_edit_calls_notify(self, ctx):
        notify = Mock()
        old_post(2).disallow_edit_if_expired(notify)
        notify.assert_called_once_with(DEFAULT_DENIED_MESSAGE)

    def test_disallow_edit_inside_window(self, ctx):
        notify = Mock()
        old_post(0).disallow_edit_if_expired(notify)
        notify.assert_not_called()

    def test_default_notify_renders_denial_page(self, ctx):
        with pytest.raises(HTTPException) as exc_info:
            old_post(2).disallow_edit_if_expired()
        response = exc_info.value.response
        assert response.status_code == 403
        assert DEFAULT_DENIED_MESSAGE in response.get_data(as_text=True)


class TestCommentPolicy:

    def test_comment_policy_has_its_own_settings(self, ctx):
        policy = Comment(body='x')._edit_window()
        assert policy.timeout_minutes == 15
        assert policy.created_at_attribute == 'created_at'
        assert '15 minutes' in policy.message
        assert policy is not ctx.extensions['edit_window']

    def test_comment_policy_is_built_once_per_app(self, ctx):
        policy = Comment(body='x')._edit_window()
        assert Comment(body='y')._edit_window() is policy
        assert policy.logger is ctx.logger

    def test_epoch_timestamps(self, ctx):
        now = int(time.time())
        assert Comment(body='x', created_at=now - 60).is_edit_allowed() is True
        assert Comment(body='x', created_at=now - 16 * 60).is_edit_allowed() is False

    def test_comment_denial_message(self, ctx):
        notify = Mock()
        comment = Comment(body='x', created_at=int(time.time()) - 3600)
        comment.disallow_edit_if_expired(notify)
        notify.assert_called_once_with(comment._edit_window().message)
        assert '15 minutes' in notify.call_args[0][0]

    def test_comment_logs_through_app_logger(self, ctx, caplog):
        caplog.set_level(logging.ERROR)
        assert Comment(body='x').is_edit_allowed() is True
        assert [r.name for r in caplog.records] == [ctx.logger.name]


class TestLoggingDisabled:

    @pytest.fixture
    def quiet_app(self, tmp_path):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'quiet.db'}",
            'EDIT_WINDOW_LOGGING': False,
        })
        with app.test_request_context():
            yield app
        app.db_engine.dispose()

    def test_invalid_records_log_nothing(self, quiet_app, caplog):
        caplog.set_level(logging.DEBUG)
        assert Post(body='x').is_edit_allowed() is True
        assert Comment(body='x').is_edit_allowed() is True
        assert Comment(body='x', created_at='not-a-date').is_edit_allowed() is True
        assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []


class TestToDict:

    def test_invalid_comment_logs_once(self, ctx, caplog):
        caplog.set_level(logging.ERROR)
        data = Comment(body='x').to_dict()
        assert data['editable'] is True
        assert data['seconds_remaining'] is None
        assert len(caplog.records) == 1

    def test_status_fields_agree(self, ctx):
        data = old_post(2).to_dict()
        assert data['editable'] is False
        assert data['seconds_remaining'] == 0

    def test_detached_expired_post_is_fail_open(self, app, caplog):
        caplog.set_level(logging.ERROR)
        with app.app_context():
            sess = app.db_session()
            post = Post(body='x')
            sess.add(post)
            sess.commit()
            sess.expunge(post)
        with app.test_request_context():
            # created_on was expired by the commit and the post is detached
            assert post.is_edit_allowed() is True
        assert any('created_on' in r.getMessage() for r in caplog.records)

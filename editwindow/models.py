import time
from datetime import datetime

from flask import current_app
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, inspect
from sqlalchemy.orm import relationship

from .edit_window import EditWindowPolicy
from .extensions import Base, edit_window_policy
from .views import render_edit_timeout


class LimitedEditMixin:
    """Attach the edit window rule to a mapped model.

    Models use the application's policy. A model with settings of its own
    lists them in ``edit_window_settings``; its policy is built once per app
    from the app config, so logging still follows ``EDIT_WINDOW_LOGGING``
    and goes to ``app.logger``. An explicit ``edit_window_policy`` wins over
    both. Only mapped columns count as fields, so a plain Python attribute
    with the configured name is reported as missing.
    """

    edit_window_policy = None
    edit_window_settings = None

    def has_field(self, name: str) -> bool:
        return name in inspect(self).mapper.column_attrs

    def get_field(self, name: str):
        return getattr(self, name)

    def _edit_window(self) -> EditWindowPolicy:
        if self.edit_window_policy is not None:
            return self.edit_window_policy
        if not self.edit_window_settings:
            return edit_window_policy()
        key = f'edit_window.{type(self).__name__}'
        policy = current_app.extensions.get(key)
        if policy is None:
            policy = EditWindowPolicy.from_config(current_app.config, logger=current_app.logger,
                                                  **self.edit_window_settings)
            current_app.extensions[key] = policy
        return policy

    def is_edit_allowed(self) -> bool:
        return self._edit_window().is_edit_allowed(self)

    def edit_seconds_remaining(self):
        return self._edit_window().seconds_remaining(self)

    def edit_window_status(self) -> dict:
        return self._edit_window().status(self)

    def disallow_edit_if_expired(self, notify=None):
        """Invoke notify (the denial page by default) if editing has expired."""
        self._edit_window().enforce(self, notify or render_edit_timeout)


class Post(LimitedEditMixin, Base):
    __tablename__ = 'posts'

    id = Column(Integer, primary_key=True)
    author = Column(String(255), nullable=False, default='anonymous')
    body = Column(Text, nullable=False)
    created_on = Column(DateTime, default=datetime.utcnow)
    updated_on = Column(DateTime, nullable=True)

    comments = relationship('Comment', back_populates='post')

    def to_dict(self):
        return {
            'id': self.id,
            'author': self.author,
            'body': self.body,
            'created_on': self.created_on.isoformat() if self.created_on else None,
            'updated_on': self.updated_on.isoformat() if self.updated_on else None,
            **self.edit_window_status(),
        }

    def __repr__(self):
        return f"<Post {self.id} by {self.author}>"


class Comment(LimitedEditMixin, Base):
    __tablename__ = 'comments'

    # comments keep an epoch timestamp and a shorter window of their own
    edit_window_settings = {
        'timeout_minutes': 15,
        'created_at_attribute': 'created_at',
        'denied_message': 'Comments can only be edited for 15 minutes after posting.',
    }

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey('posts.id'), nullable=False, index=True)
    body = Column(Text, nullable=False)
    created_at = Column(Integer, default=lambda: int(time.time()))

    post = relationship('Post', back_populates='comments')

    def to_dict(self):
        return {
            'id': self.id,
            'post_id': self.post_id,
            'body': self.body,
            'created_at': self.created_at,
            **self.edit_window_status(),
        }

    def __repr__(self):
        return f"<Comment {self.id} post={self.post_id}>"

import os
import sys

from editwindow import create_app, Base


def init_db(app):
    engine = app.db_engine
    print(f"Creating tables on {engine}")
    Base.metadata.create_all(bind=engine)
    print("Tables created")
    print(f"Edit window policy: {app.extensions['edit_window']!r}")


def serve(app):
    host = os.environ.get('FLASK_RUN_HOST', '127.0.0.1')
    port = int(os.environ.get('FLASK_RUN_PORT', '5000'))
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    app.run(host=host, port=port, debug=debug)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    app = create_app()
    if argv and argv[0] == 'initdb':
        init_db(app)
    else:
        serve(app)


if __name__ == '__main__':
    main()

import os

from xword import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Socket.IO server so /ws works in dev
    socketio.run(
        app,
        host=os.environ.get('XWORD_HOST', '127.0.0.1'),
        port=int(os.environ.get('XWORD_PORT', '5000')),
        debug=True,
    )

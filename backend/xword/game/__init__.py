"""Crossword game domain: state shape, grid geometry and the event reducers.

Nothing in this package touches the database, sockets or the Flask app.
Everything here must behave identically on the server and when a client
folds the same ordered events, so it only depends on its inputs.
"""

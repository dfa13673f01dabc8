"""JSON web API for the paging simulator.

An **optional** extra — install with::

    pip install py-pagesim[web]

The ``create_app`` factory in ``app.py`` starts a session and exposes
its access / resolve / cancel cycle over HTTP for a browser front end.
"""

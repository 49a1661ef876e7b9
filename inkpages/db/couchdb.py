import pycouchdb

from inkpages.settings import settings


def get_couch():
    """
    Create a CouchDB database handle.
    Called at runtime to avoid import-time connections.
    """
    couch = pycouchdb.Server(settings.couchdb_url)
    return couch.database(settings.COUCHDB_DATABASE)

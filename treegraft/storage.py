# License: BSD3

"""
Where node annotations live.

Annotation graphs for large corpora can outgrow memory; the disk store
trades speed for space by keeping node annotations in a `shelve`
database inside a temporary directory.
"""

import os
import shelve
import shutil
import tempfile


MEMORY = 'memory'
DISK = 'disk'
STORAGE_MODES = [MEMORY, DISK]


class MemoryStore(object):
    """
    Node id to annotation dictionary, kept in memory
    """
    def __init__(self):
        self._data = {}

    def __contains__(self, node_id):
        return node_id in self._data

    def __len__(self):
        return len(self._data)

    def get(self, node_id):
        """
        Annotations of a node (empty dict if it has none yet).
        The result is a copy; use `put` to change it.
        """
        return dict(self._data.get(node_id, {}))

    def value(self, node_id, key):
        "a single annotation, or None"
        return self._data.get(node_id, {}).get(key)

    def put(self, node_id, key, value):
        "set a single annotation"
        self._data.setdefault(node_id, {})[key] = value

    def close(self):
        "release resources"
        self._data = {}


class DiskStore(object):
    """
    Node id to annotation dictionary, kept in a shelve database which
    is deleted on `close`
    """
    def __init__(self, tmpdir=None):
        self._dir = tempfile.mkdtemp(prefix='treegraft-', dir=tmpdir)
        self._shelf = shelve.open(os.path.join(self._dir, 'annos'))
        self._count = 0

    def __contains__(self, node_id):
        return str(node_id) in self._shelf

    def __len__(self):
        return self._count

    def get(self, node_id):
        """
        Annotations of a node (empty dict if it has none yet)
        """
        return self._shelf.get(str(node_id), {})

    def value(self, node_id, key):
        "a single annotation, or None"
        return self._shelf.get(str(node_id), {}).get(key)

    def put(self, node_id, key, value):
        "set a single annotation"
        skey = str(node_id)
        if skey in self._shelf:
            annos = self._shelf[skey]
        else:
            annos = {}
            self._count += 1
        annos[key] = value
        self._shelf[skey] = annos

    def close(self):
        "close the database and delete it"
        if self._shelf is not None:
            self._shelf.close()
            self._shelf = None
            shutil.rmtree(self._dir, ignore_errors=True)


def mk_store(mode):
    """
    Annotation store for the given storage mode
    """
    if mode == MEMORY:
        return MemoryStore()
    elif mode == DISK:
        return DiskStore()
    else:
        raise ValueError('unknown storage mode %r (expected one of %s)' %
                         (mode, ', '.join(STORAGE_MODES)))

import logging, json, sys, time, os

ROOT_LOGGER = "recordstore"


def _configure_root(level, to_file):
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    root.setLevel(level)
    formatter = logging.Formatter(
        fmt=json.dumps({
            "ts": "%(asctime)s",
            "level": "%(levelname)s",
            "name": "%(name)s",
            "msg": "%(message)s"
        }),
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    formatter.converter = time.gmtime  # UTC timestamps

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    if to_file:
        dir_path = os.path.dirname(to_file)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        file_handler = logging.FileHandler(to_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    return root


def get_logger(name=None, level=logging.INFO, to_file=None):
    """
    Logger inside the `recordstore` hierarchy.

    Handlers live on the `recordstore` logger only, set up on first use;
    `get_logger("collection")` returns `recordstore.collection`, which
    propagates to it.
    """
    root = _configure_root(level, to_file)
    if not name or name == ROOT_LOGGER:
        return root
    if name.startswith(ROOT_LOGGER + "."):
        name = name[len(ROOT_LOGGER) + 1:]
    return root.getChild(name)

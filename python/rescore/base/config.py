"""
Utilities for loading configuration data and setting up logging.

Configuration in rescore is expressed as plain (nested) dictionaries.  These can be read from a
YAML or JSON file via :py:func:`load_from_file` and combined with defaults via
:py:func:`merge_config`.  :py:func:`configure_log` sets up the root logger from the same
configuration data.
"""
import os, sys, json, logging
from collections import OrderedDict
from collections.abc import Mapping
from copy import deepcopy

import yaml

from . import RescoreException

NORMAL = (logging.INFO + logging.DEBUG) // 2
logging.addLevelName(NORMAL, "NORMAL")

global_logdir = None
global_logfile = None
_log_handler = None

DEF_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

class ConfigurationException(RescoreException):
    """
    an exception indicating a problem with the configuration data (e.g. a missing or
    invalid parameter).
    """

    def __init__(self, message, cause=None, param=None):
        """
        :param str message:  the description of the problem
        :param Exception cause:  the underlying exception that triggered this one, if any
        :param str   param:  the name of the offending configuration parameter, if known
        """
        if cause and message is None:
            message = str(cause)
        super(ConfigurationException, self).__init__(message)
        self.cause = cause
        self.param = param

def load_from_file(configfile: str) -> Mapping:
    """
    read the configuration data from the given file.  The file format is determined by
    the file extension: ``.json`` files are read as JSON; all others are read as YAML.

    :param str configfile:  the path to the configuration file
    :raises ConfigurationException:  if the file cannot be read or parsed or if its
                                     contents is not a dictionary
    """
    try:
        with open(configfile) as fd:
            if configfile.endswith('.json'):
                data = json.load(fd, object_pairs_hook=OrderedDict)
            else:
                data = yaml.safe_load(fd)
    except (OSError, ValueError, yaml.YAMLError) as ex:
        raise ConfigurationException("Unable to load configuration from {0}: {1}"
                                     .format(configfile, str(ex)), cause=ex)

    if data is None:
        data = OrderedDict()
    if not isinstance(data, Mapping):
        raise ConfigurationException("{0}: configuration is not a dictionary".format(configfile))
    return data

def merge_config(primary: Mapping, defconf: Mapping) -> Mapping:
    """
    merge the data from a primary configuration over a default configuration, returning
    a new dictionary.  Nested dictionaries are merged recursively; any other value in
    ``primary`` replaces the corresponding value in ``defconf``.  Neither input is altered.
    """
    out = deepcopy(defconf) if defconf else OrderedDict()
    if not primary:
        return out
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = merge_config(val, out[key])
        else:
            out[key] = deepcopy(val)
    return out

def configure_log(logfile: str=None, level: int=None, format: str=None, config: Mapping=None,
                  addstderr=False):
    """
    configure the root logger to send messages to a log file.

    :param str logfile:  the path to the log file; if relative, it will be resolved against
                         the ``logdir`` configuration parameter (or the current directory).  If
                         not provided, the ``logfile`` configuration parameter is used.
    :param int   level:  the logging level to set on the handler; if not provided, the
                         ``loglevel`` configuration parameter is used (default: NORMAL)
    :param str  format:  the format for log messages (default: the ``logformat`` parameter)
    :param dict config:  the configuration data to draw parameters from
    :param bool addstderr:  if True, also send messages to standard error
    """
    global global_logdir, global_logfile, _log_handler
    if config is None:
        config = {}

    if not logfile:
        logfile = config.get('logfile', "rescore.log")
    if not os.path.isabs(logfile):
        global_logdir = config.get('logdir', os.getcwd())
        logfile = os.path.join(global_logdir, logfile)
    else:
        global_logdir = os.path.dirname(logfile)
    global_logfile = logfile

    if level is None:
        level = config.get('loglevel', NORMAL)
    if not format:
        format = config.get('logformat', DEF_LOG_FORMAT)

    rootlog = logging.getLogger()
    if _log_handler:
        rootlog.removeHandler(_log_handler)
        _log_handler.close()

    _log_handler = logging.FileHandler(logfile)
    _log_handler.setLevel(level)
    _log_handler.setFormatter(logging.Formatter(format))
    rootlog.addHandler(_log_handler)
    if rootlog.level == logging.NOTSET or rootlog.level > level:
        rootlog.setLevel(level)

    if addstderr:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter("%(name)s %(levelname)s: %(message)s"))
        rootlog.addHandler(handler)

    return rootlog

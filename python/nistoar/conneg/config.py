"""
Utilities for obtaining a configuration for a content-negotiating web service and for
setting up its logging.

A configuration is a (possibly nested) dictionary of parameters.  It is typically read from a
YAML or JSON file (via :py:func:`load_from_file`) and then layered on top of a set of default
values (via :py:func:`merge_config`).
"""
import os, json, logging, copy
from collections.abc import Mapping

import yaml

from . import ConnegException

__all__ = [ "ConfigurationException", "merge_config", "load_from_file", "configure_log",
            "global_logdir", "global_logfile" ]

global_logdir = None
global_logfile = None

_log_levels_byname = {
    "CRITICAL": logging.CRITICAL,
    "FATAL":    logging.FATAL,
    "ERROR":    logging.ERROR,
    "WARNING":  logging.WARNING,
    "WARN":     logging.WARNING,
    "INFO":     logging.INFO,
    "DEBUG":    logging.DEBUG,
    "NOTSET":   logging.NOTSET
}

DEF_LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
DEF_LOG_FILE = "conneg.log"

class ConfigurationException(ConnegException):
    """
    a class indicating an error in the configuration of a service
    """
    def __init__(self, msg=None, param=None, cause=None):
        if not msg:
            if param:
                msg = "Configuration error for parameter, " + param
            else:
                msg = "Unknown configuration error"
            if cause:
                msg += ": " + str(cause)
        super(ConfigurationException, self).__init__(msg)
        self.param = param
        self.cause = cause

def merge_config(primary: Mapping, defconf: Mapping) -> dict:
    """
    merge two configurations, with one having precedence over the other.  Values that are
    themselves dictionaries are merged recursively.  Neither input is altered.

    :param dict primary:  the configuration whose values take precedence
    :param dict defconf:  the default configuration whose values are used when not set in
                          ``primary``.
    :return:  the merged configuration
              :rtype: dict
    """
    out = copy.deepcopy(dict(defconf))
    for key, val in primary.items():
        if isinstance(val, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = merge_config(val, out[key])
        else:
            out[key] = copy.deepcopy(val)
    return out

def load_from_file(configfile: str) -> dict:
    """
    read the configuration from the given file and return it as a dictionary.
    The file name extension is used to determine its format (with YAML
    being the default).
    """
    with open(configfile) as fd:
        if configfile.endswith('.json'):
            try:
                return json.load(fd)
            except ValueError as ex:
                raise ConfigurationException(configfile+": JSON syntax error: "+str(ex), cause=ex)
        else:
            try:
                out = yaml.safe_load(fd)
            except yaml.YAMLError as ex:
                raise ConfigurationException(configfile+": YAML syntax error: "+str(ex), cause=ex)
            return out or {}

def configure_log(logfile: str=None, level=None, format: str=None, config: Mapping=None,
                  addstderr=False):
    """
    configure the root logger to write to a file.  Parameters not set directly as arguments
    are looked for in the given configuration dictionary under the following names:

    ``logdir``
        the directory where log files should be written.  Relative ``logfile`` paths are
        assumed relative to this directory.
    ``logfile``
        the name of the file to write to (default: ``conneg.log``)
    ``loglevel``
        the logging threshold level, given as a name (e.g. "DEBUG") or a number
    ``logformat``
        the format string for the output messages

    :param str   logfile:  the path to the output file
    :param       level:    the logging threshold level
    :param str   format:   the format string for the output messages
    :param dict  config:   the configuration dictionary to draw defaults from
    :param bool addstderr: if True, also send messages to standard error
    """
    global global_logdir
    global global_logfile
    if not config:
        config = {}
    if not logfile:
        logfile = config.get('logfile', DEF_LOG_FILE)

    if not os.path.isabs(logfile):
        if 'logdir' in config:
            global_logdir = config['logdir']
        if global_logdir:
            logfile = os.path.join(global_logdir, logfile)
    global_logfile = logfile

    if level is None:
        level = config.get('loglevel', logging.DEBUG)
    if not isinstance(level, int):
        lev = _log_levels_byname.get(str(level).upper())
        if lev is None:
            raise ConfigurationException("Unrecognized log level: " + str(level), 'loglevel')
        level = lev
    if not format:
        format = config.get('logformat', DEF_LOG_FORMAT)

    rootlog = logging.getLogger()
    hdlr = logging.FileHandler(logfile)
    hdlr.setFormatter(logging.Formatter(format))
    hdlr.setLevel(level)
    rootlog.addHandler(hdlr)
    if addstderr:
        hdlr = logging.StreamHandler()
        hdlr.setFormatter(logging.Formatter(format))
        hdlr.setLevel(level)
        rootlog.addHandler(hdlr)
    rootlog.setLevel(level)
    rootlog.info("Logging initialized to %s", logfile)

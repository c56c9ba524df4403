"""
Layered configuration files, applied to module attributes.

The settings for a module live in files named after the module and placed beside it. The values are
nested in sections that follow the module's fully qualified name, so the settings for midiconnect.midi are
in the section [midiconnect] [[midi]].
"""
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from configobj.validate import Validator

# The default extension for configuration files
config_extension = '.cfg'


def config_flavor(name, flavor=None):
    """
    >>> config_flavor('midi', 'default')
    'midi.default'
    >>> config_flavor('midi')
    'midi'
    """
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    return load_config_file_base(file, False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def user_config_file(name):
    return os.path.expanduser('~/' + name + config_extension)


def describe_errors(config, result):
    """
    Lists the values that failed validation as 'section/key: reason' strings.
    """
    errors = []
    for section_list, key, error in flatten_errors(config, result):
        location = '/'.join(section_list + [key] if key is not None else section_list)
        errors.append("%s: %s" % (location, error if error is not False else 'missing'))
    return errors


def load_config(name, directory):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones overriding earlier ones:
        - the default specialization
        - the platform specialization
        - the base configuration
        - the user override, ~/<name>.cfg
        The merged configuration is then validated against the "schema" specialization,
        which also supplies defaults and converts the values to their declared types.
    :directory: the location of the configuration files
    :return: the validated ConfigObj
    """
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    local_config = config_flavor_file(name, directory)
    user_config = load_config_file_base(user_config_file(name), must_exist=False)
    config = ConfigObj()
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(local_config)
    config.merge(user_config)

    config.configspec = config_flavor_file(name, directory, 'schema')
    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" %
                             (name, ', '.join(describe_errors(config, result))))
    return config


def apply(target, config_path, config_name, directory):
    """
    Applies defined values from a path to a given target object.
    :param target: The object to receive the values defined
    :param config_path: The path that is the prefix to the values defined. The path is split on '.'.
    :param config_name: The configuration file to load.
    :param directory: the directory containing the config files
    """
    conf = load_config(config_name, directory)
    name_parts = config_path.split('.')
    apply_conf_path(conf, name_parts, target)


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:   An iterable that lists the names of the sections to resolve
    :return: The configuration section identified by the path, or None
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return None
    return conf


def apply_conf_path(conf: Section, name_parts, target):
    """
    Applies a configuration path to a given target object
    :return: True if the configuration section exists
    """
    conf = fetch_conf_path(conf, name_parts)
    if conf:
        apply_conf(conf, target)
    return conf is not None


def apply_conf(conf: Section, target):
    """
    Applies the attributes contained in a configuration object to a target object.
    Only attributes the target already has are set. Subsections are not applied.
    """
    for k, v in conf.items():
        if k not in conf.sections and hasattr(target, k):
            setattr(target, k, v)


def reconstruct_name(path, package_depth):
    """
    Retrieves a module name from a path.
    :param path The filename of a module file
    :param package_depth The number of levels deep from the root.

    >>> reconstruct_name('C:/drive/dir/package1/package2/module.py', 2)
    'package1.package2.module'
    >>> reconstruct_name('C:\\\\drive\\\\dir\\\\module.py', 0)
    'module'
    """
    path = path.replace('\\', '/')
    parts = path.split('/')
    parts[-1] = os.path.splitext(parts[-1])[0]
    return '.'.join(parts[-package_depth - 1:])


def fq_module_name(module):
    """
    Retrieves the fully qualified name of the module. When the module is run as __main__, the name
    is rebuilt from the package and the file name.
    """
    if not module.__package__:
        raise ConfigObjError('module has no package defined')
    return module.__name__ if module.__name__ != '__main__' else \
        reconstruct_name(module.__file__, len(module.__package__.split('.')))


def configure_module(module, config_name=None):
    """
    Applies the configuration to the given module.
    The configuration is loaded from files named after the module, in the module's directory.
    The settings are nested in sections that follow the module's location (x.y.z for x/y/z.py).
    """
    fqname = fq_module_name(module)
    if not config_name:
        config_name = fqname.split('.')[-1]
    apply(module, fqname, config_name, os.path.dirname(module.__file__))

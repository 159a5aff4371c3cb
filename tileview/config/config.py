# This file is part of the TileView project.
# Copyright (C) 2024 TileView contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
System-wide configuration.
"""
import os
import copy

from tileview.util.yaml import load_yaml_file


class Options(dict):
    """
    Dictionary with attribute style access.

    >>> o = Options(bar='foo')
    >>> o.bar
    'foo'
    """
    def __repr__(self):
        return '%s(%s)' % (self.__class__.__name__, dict.__repr__(self))

    def __getattr__(self, name):
        if name in self:
            return self[name]
        else:
            raise AttributeError(name)

    __setattr__ = dict.__setitem__

    def __delattr__(self, name):
        if name in self:
            del self[name]
        else:
            raise AttributeError(name)

    def update(self, other=None, **kw):
        if other is not None:
            if hasattr(other, 'items'):
                it = other.items()
            else:
                it = iter(other)
        else:
            it = kw.items()
        for key, value in it:
            if key in self and isinstance(self[key], Options):
                self[key].update(value)
            else:
                self[key] = value

    def __deepcopy__(self, memo):
        return Options(copy.deepcopy(list(self.items()), memo))


def _to_options_map(mapping):
    if isinstance(mapping, dict):
        opt = Options()
        for key, value in mapping.items():
            opt[key] = _to_options_map(value)
        return opt
    elif isinstance(mapping, list):
        return [_to_options_map(m) for m in mapping]
    else:
        return mapping


def abspath(path, base_path=None):
    """
    Convert path to absolute path, relative to `base_path` or the current
    working directory.
    """
    if base_path:
        return os.path.abspath(os.path.join(base_path, path))
    return os.path.abspath(path)


def load_default_config():
    from tileview.config import defaults
    config_dict = {}
    for k, v in defaults.__dict__.items():
        if k.startswith('_'): continue
        config_dict[k] = copy.deepcopy(v)

    default_conf = Options()
    load_config(default_conf, config_dict=config_dict)
    return default_conf


def load_config(config, config_file=None, config_dict=None, clear_existing=False):
    """
    Merge `config_dict` or the YAML `config_file` into `config`.
    Relative ``cache.base_dir`` paths are resolved against the directory
    of `config_file`.
    """
    if clear_existing:
        for key in list(config.keys()):
            del config[key]

    conf_base_dir = None
    if config_dict is None:
        config_dict = load_yaml_file(config_file)
        if isinstance(config_file, str):
            conf_base_dir = os.path.dirname(os.path.abspath(config_file))

    defaults = _to_options_map(config_dict)

    if defaults:
        for key, value in defaults.items():
            if key in config and hasattr(config[key], 'update'):
                config[key].update(value)
            else:
                config[key] = value

    if conf_base_dir and config.get('cache', {}).get('base_dir'):
        config.cache.base_dir = abspath(config.cache.base_dir, conf_base_dir)

    return config

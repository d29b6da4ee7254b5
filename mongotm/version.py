__author__ = 'abdul'

MONGOTM_VERSION = "0.1.0"

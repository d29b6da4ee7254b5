__author__ = 'abdul'

import pytest

from protogram import Program

REST_SOURCE = r"""
grammar REST;
token TOP     = '/' subject '/' command ('/' data)? ;
token subject = /\w+/ ;
token command = 'create' | 'retrieve' | 'update' | 'delete' ;
token data    = .* ;
"""

REST_PROTO_SOURCE = r"""
grammar RESTProto;
token TOP     = '/' subject '/' command ('/' data)? ;
token subject = /\w+/ ;
proto token command ;
token command:sym<create> ;
token command:sym<retrieve> ;
token command:sym<update> ;
token command:sym<delete> ;
token data    = .* ;
"""


@pytest.fixture
def rest():
    return Program.from_source(REST_SOURCE)


@pytest.fixture
def rest_proto():
    return Program.from_source(REST_PROTO_SOURCE)

#!/usr/bin/env python
#
"""
Middleware for the alias inbox API.
"""
# 3rd party imports
#
from django.utils.cache import add_never_cache_headers


########################################################################
########################################################################
#
class NoStoreApiMiddleware:
    """
    API responses carry session specific data (an inbox, the account
    list) and must never be cached by the browser or anything in between.
    """

    API_PREFIX = "/api/"

    ####################################################################
    #
    def __init__(self, get_response):
        self.get_response = get_response

    ####################################################################
    #
    def __call__(self, request):
        response = self.get_response(request)
        if request.path.startswith(self.API_PREFIX):
            add_never_cache_headers(response)
        return response

import logging
import mimetypes
import os

from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework import status
from django.http import FileResponse

from .exceptions import ExternalSourceError, RefreshInProgressError
from .repository import CountryStore, SORT_ORDERS
from .serializers import CountrySerializer
from .services import RefreshService
from . import utils

logger = logging.getLogger(__name__)


def internal_error():
    return Response({"error": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
def refresh_countries(request):
    """
    POST /countries/refresh
    Fetch countries and exchange rates, upsert them in one transaction and
    regenerate the summary image.
    """
    try:
        result = RefreshService(store=CountryStore()).refresh()
    except ExternalSourceError as e:
        return Response(
            {
                "error": "External data source unavailable",
                "details": f"Could not fetch data from {e.source.value} API",
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    except RefreshInProgressError:
        return Response({"error": "Refresh already in progress"}, status=status.HTTP_409_CONFLICT)
    except Exception:
        logger.exception("Refresh failed")
        return internal_error()

    return Response(
        {
            "message": "Refreshed successfully",
            "total": result.total,
            "skipped": result.skipped,
            "last_refreshed_at": result.last_refreshed_at.isoformat(),
        },
        status=status.HTTP_200_OK,
    )


@api_view(['GET'])
def list_countries(request):
    """
    GET /countries
    Filters:
      - region, currency (alias currency_code)
    Sorting:
      - ?sort=gdp_desc or ?sort=gdp_asc (countries without a GDP come last)
    Default:
      - Ordered by id ascending.
    """
    allowed_filters = {"region", "currency", "currency_code", "sort"}

    # --- Validate filters ---
    for key in request.query_params.keys():
        if key not in allowed_filters:
            return Response(
                {"error": "Validation failed", "details": {key: "is not a valid filter"}},
                status=status.HTTP_400_BAD_REQUEST
            )
        if not request.query_params.get(key):
            return Response(
                {"error": "Validation failed", "details": {key: "is required"}},
                status=status.HTTP_400_BAD_REQUEST
            )

    sort_param = request.query_params.get("sort")
    if sort_param and sort_param not in SORT_ORDERS:
        return Response(
            {"error": "Validation failed",
             "details": {"sort": "invalid value (use gdp_asc or gdp_desc)"}},
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        qs = CountryStore().filter(
            region=request.query_params.get("region"),
            currency_code=request.query_params.get("currency") or request.query_params.get("currency_code"),
            sort=sort_param,
        )
        serializer = CountrySerializer(qs, many=True)
        return Response(serializer.data)
    except Exception:
        logger.exception("Listing countries failed")
        return internal_error()


@api_view(['GET', 'DELETE'])
def country_detail(request, name):
    """
    GET /countries/:name  -> return 404 JSON if not found
    DELETE /countries/:name -> delete, return 204 or 404
    """
    store = CountryStore()

    if request.method == 'GET':
        country = store.get_by_name(name)
        if country is None:
            return Response({"error": "Country not found"}, status=status.HTTP_404_NOT_FOUND)
        serializer = CountrySerializer(country)
        return Response(serializer.data)

    # DELETE
    if not store.delete_by_name(name):
        return Response({"error": "Country not found"}, status=status.HTTP_404_NOT_FOUND)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
def get_status(request):
    """
    GET /status -> { total_countries, last_refreshed_at }
    last_refreshed_at is taken as the max(last_refreshed_at) across records (or null)
    """
    store = CountryStore()
    last = store.last_refreshed_at()
    return Response({
        "total_countries": store.count(),
        "last_refreshed_at": last.isoformat() if last else None,
    })


@api_view(['GET'])
def get_summary_image(request):
    """
    GET /countries/image
    Serve the summary artifact at utils.get_summary_image_path().
    If not found, return specified JSON error.
    """
    path = utils.get_summary_image_path()
    if not os.path.exists(path):
        return Response({"error": "Summary image not found"}, status=status.HTTP_404_NOT_FOUND)
    content_type = mimetypes.guess_type(path)[0] or 'image/png'
    return FileResponse(open(path, 'rb'), content_type=content_type)

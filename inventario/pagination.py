from rest_framework.pagination import PageNumberPagination


class PaginacionEstandar(PageNumberPagination):
    """
    Paginación por defecto de la API: ?page=N&limit=M (máximo 100).
    Vive fuera de views.py porque DRF la resuelve al importar las vistas.
    """

    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

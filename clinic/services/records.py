from rest_framework.exceptions import NotFound


def fetch(model, pk, label: str, qs=None):
    """Load ``model`` by primary key or raise a 404 naming ``label``."""
    obj = (qs if qs is not None else model.objects).filter(pk=pk).first() if pk else None
    if obj is None:
        raise NotFound(f'{label} not found')
    return obj

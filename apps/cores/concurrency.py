from django.utils import timezone

from apps.cores.exceptions import StateConflict


def compare_and_set(model, pk, expected, changes, *, touch=True):
    """
    Conditional update: apply `changes` only if the row still matches
    `expected`. Raises StateConflict when another request got there first.
    """
    if touch:
        changes = {**changes, "updated_at": timezone.now()}

    updated = model.objects.filter(pk=pk, **expected).update(**changes)
    if not updated:
        raise StateConflict(
            f"{model._meta.verbose_name.capitalize()} {pk} changed concurrently; "
            f"expected {expected}."
        )
    return updated

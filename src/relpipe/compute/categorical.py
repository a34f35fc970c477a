"""Categorical values.

A categorical column holds string values restricted to
a fixed and ordered set of labels. In Arrow it's represented
by a :class:`pyarrow.DictionaryArray` where the dictionary
is the set of labels and the indices point into it.

Using the dictionary as the set of labels, instead of only
the values that happen to be present, means that the
labels survive filtering: a categorical of ``["EWR", "JFK", "LGA"]``
keeps all three labels even after all the ``"LGA"`` rows were removed.

The order of the labels is meaningful, sorting and min/max
aggregations on a categorical column follow it.

>>> import pyarrow as pa
>>> origins = encode_categorical(pa.array(["JFK", "EWR", None, "JFK"]))
>>> origins.dictionary.to_pylist()
['EWR', 'JFK']
>>> origins.indices.to_pylist()
[1, 0, None, 1]
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import TypeMismatch

log = logging.getLogger(__name__)

__all__ = (
    "Categorical",
    "encode_categorical",
    "relevel_categorical",
    "recode_categorical",
    "is_categorical",
)


def is_categorical(data_type: pa.DataType) -> bool:
    """If the type is a categorical (string dictionary) type."""
    return pa.types.is_dictionary(data_type) and (
        pa.types.is_string(data_type.value_type)
        or pa.types.is_large_string(data_type.value_type)
    )


def _as_strings(values: pa.Array | pa.ChunkedArray) -> pa.Array:
    if isinstance(values, pa.ChunkedArray):
        values = values.combine_chunks()
    if pa.types.is_dictionary(values.type):
        values = values.dictionary_decode()
    if not pa.types.is_string(values.type):
        try:
            values = pc.cast(values, pa.string())
        except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as err:
            raise TypeMismatch(
                f"Can't use values of type {values.type} as categorical labels"
            ) from err
    return values


def encode_categorical(
    values: pa.Array | pa.ChunkedArray,
    labels: list[str] | pa.Array | None = None,
    ordered: bool = False,
    allow_new_labels: bool = False,
) -> pa.DictionaryArray:
    """Encode values as a categorical with the given labels.

    :param values: The values to encode, non string values are
                   converted to their string representation.
    :param labels: The ordered set of permitted labels, when omitted
                   the labels are the distinct values sorted.
    :param ordered: If the order of the labels is meaningful for
                    comparisons (as in ``low < medium < high``).
    :param allow_new_labels: Values that are not in ``labels`` are
                             appended to them in order of appearance
                             instead of being rejected.

    Missing values stay missing, they are never a label.

    >>> cat = encode_categorical(pa.array(["b", "a"]), labels=["a", "b", "c"])
    >>> cat.dictionary.to_pylist(), cat.indices.to_pylist()
    (['a', 'b', 'c'], [1, 0])
    """
    values = _as_strings(values)
    if labels is None:
        distinct = pc.drop_null(pc.unique(values))
        labels = distinct.take(pc.sort_indices(distinct))
    elif isinstance(labels, pa.Array):
        labels = pc.cast(labels, pa.string())
    else:
        labels = pa.array(list(labels), type=pa.string())

    if len(pc.unique(labels)) != len(labels):
        raise ValueError(f"Categorical labels must be unique, got {labels.to_pylist()}")

    indices = pc.index_in(values, value_set=labels)
    unknown = pc.and_(pc.is_valid(values), pc.is_null(indices))
    if pc.any(unknown).as_py():
        new_labels = pc.unique(values.filter(unknown))
        if not allow_new_labels:
            raise TypeMismatch(
                f"Values {new_labels.to_pylist()} are not in the categorical labels {labels.to_pylist()}"
            )
        log.debug("Adding labels %s to categorical", new_labels.to_pylist())
        labels = pa.concat_arrays([labels, new_labels])
        indices = pc.index_in(values, value_set=labels)

    return pa.DictionaryArray.from_arrays(
        pc.cast(indices, pa.int32()), labels, ordered=ordered
    )


def relevel_categorical(
    values: pa.Array | pa.ChunkedArray, labels: list[str]
) -> pa.DictionaryArray:
    """Change the order of the labels of a categorical.

    Labels that are not mentioned keep their relative order
    and are placed after the mentioned ones, so that moving
    a single label first is as simple as ``relevel_categorical(values, ["JFK"])``.

    >>> cat = encode_categorical(pa.array(["EWR", "JFK", "LGA"]))
    >>> relevel_categorical(cat, ["LGA"]).dictionary.to_pylist()
    ['LGA', 'EWR', 'JFK']
    """
    if isinstance(values, pa.ChunkedArray):
        values = values.combine_chunks()
    if not is_categorical(values.type):
        values = encode_categorical(values)

    current = values.dictionary.to_pylist()
    missing = [label for label in labels if label not in current]
    if missing:
        raise TypeMismatch(f"Labels {missing} are not in the categorical labels {current}")

    new_labels = list(labels) + [label for label in current if label not in labels]
    return encode_categorical(values, labels=new_labels, ordered=values.type.ordered)


def recode_categorical(
    values: pa.Array | pa.ChunkedArray, mapping: dict[str, str]
) -> pa.DictionaryArray:
    """Rename the labels of a categorical.

    Labels mapped to the same new label are merged,
    the merged label takes the position of the first of them.

    >>> cat = encode_categorical(pa.array(["EWR", "JFK", "LGA"]))
    >>> recode_categorical(cat, {"JFK": "NYC", "LGA": "NYC"}).to_pylist()
    ['EWR', 'NYC', 'NYC']
    """
    if isinstance(values, pa.ChunkedArray):
        values = values.combine_chunks()
    if not is_categorical(values.type):
        values = encode_categorical(values)

    current = values.dictionary.to_pylist()
    unknown = [label for label in mapping if label not in current]
    if unknown:
        raise TypeMismatch(f"Labels {unknown} are not in the categorical labels {current}")

    new_labels = list(dict.fromkeys(mapping.get(label, label) for label in current))
    recoded = pa.array(
        [mapping.get(v, v) if v is not None else None for v in values.to_pylist()],
        type=pa.string(),
    )
    return encode_categorical(recoded, labels=new_labels, ordered=values.type.ordered)


class Categorical:
    """Target type for columns that must be categorical.

    Used where a column type can be declared, like
    :meth:`relpipe.Relation.mutate` or :meth:`relpipe.Relation.open_csv`,
    to request that the values are encoded with the given labels.
    """

    def __init__(
        self,
        labels: list[str] | None = None,
        ordered: bool = False,
        allow_new_labels: bool = False,
    ) -> None:
        """
        :param labels: The permitted labels, inferred from the data when omitted.
        :param ordered: If the order of the labels is meaningful.
        :param allow_new_labels: Accept values not in ``labels``.
        """
        self.labels = list(labels) if labels is not None else None
        self.ordered = ordered
        self.allow_new_labels = allow_new_labels

    def encode(self, values: pa.Array | pa.ChunkedArray) -> pa.DictionaryArray:
        """Encode the values as a categorical with these labels."""
        return encode_categorical(
            values,
            labels=self.labels,
            ordered=self.ordered,
            allow_new_labels=self.allow_new_labels,
        )

    def __str__(self) -> str:
        return f"Categorical(labels={self.labels}, ordered={self.ordered})"

    __repr__ = __str__

"""Leaf nodes of the query plans, reading data into Arrow.

Sources read CSV files, Parquet files or in-memory tables
and emit their content as record batches.

The pipeline doesn't participate in type inference,
each source either infers the types or takes them from
the column types that were explicitly declared.
A cell that reaches the pipeline is always a value
of the column type or missing.
"""

import logging
from abc import abstractmethod

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from ..config import config
from .base import QueryPlanNode

log = logging.getLogger(__name__)


class DataSourceNode(QueryPlanNode):
    """A node without children that reads data from outside the plan."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """The schema of the emitted batches, read without loading the rows."""
        ...


class CSVDataSource(DataSourceNode):
    """Stream the rows of a local CSV file.

    The file has a header row and is read in blocks of
    ``block_size`` bytes, each block becoming one batch.

    Rows that don't have the expected number of columns
    are skipped, the reader records them in
    :attr:`invalid_rows` as ``(line_number, text)`` tuples
    so that they can be reported out of band.
    """

    def __init__(
        self,
        filename: str,
        block_size: int | None = None,
        column_types: dict[str, pa.DataType] | None = None,
        null_values: list[str] | None = None,
    ) -> None:
        """
        :param filename: Path of the CSV file.
        :param block_size: Bytes read for each batch, defaults to
                           ``RELPIPE_CSV_BLOCK_SIZE``.
        :param column_types: Explicitly declared types for some columns,
                             the others are inferred.
        :param null_values: Strings that have to be read as missing values,
                            defaults to the pyarrow ones (``""``, ``NA``, ``NULL``...)
        """
        self.filename = filename
        self.block_size = block_size if block_size is not None else config.CSV_BLOCK_SIZE
        self.column_types = column_types or {}
        self.null_values = null_values
        self.invalid_rows: list[tuple[int | None, str]] = []

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, block_size={self.block_size})"

    def _handle_invalid_row(self, row: pa.csv.InvalidRow) -> str:
        log.warning(
            "Skipping invalid row %s in %s: expected %d columns, got %d",
            row.number, self.filename, row.expected_columns, row.actual_columns,
        )
        self.invalid_rows.append((row.number, row.text))
        return "skip"

    def _open(self) -> pa.csv.CSVStreamingReader:
        convert_options = pa.csv.ConvertOptions(column_types=self.column_types)
        if self.null_values is not None:
            convert_options.null_values = self.null_values
        return pa.csv.open_csv(
            self.filename,
            read_options=pa.csv.ReadOptions(block_size=self.block_size),
            parse_options=pa.csv.ParseOptions(
                invalid_row_handler=self._handle_invalid_row
            ),
            convert_options=convert_options,
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Read the file one block at a time."""
        log.info("Reading %s", self.filename)
        self.invalid_rows = []
        emitted = False
        with self._open() as reader:
            schema = reader.schema
            for batch in reader:
                emitted = True
                yield batch
        if not emitted:
            yield _empty_batch(schema)

    def poll_schema(self) -> pa.Schema:
        with self._open() as reader:
            return reader.schema


class ParquetDataSource(DataSourceNode):
    """Stream the row groups of a local Parquet file as batches."""

    def __init__(self, filename: str, batch_size: int | None = None) -> None:
        """
        :param filename: Path of the Parquet file.
        :param batch_size: Maximum number of rows in each batch.
        """
        self.filename = filename
        self.batch_size = batch_size or 65536

    def __str__(self) -> str:
        return f"ParquetDataSource({self.filename}, batch_size={self.batch_size})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        log.info("Reading %s", self.filename)
        emitted = False
        with pa.parquet.ParquetFile(self.filename) as reader:
            for batch in reader.iter_batches(batch_size=self.batch_size):
                emitted = True
                yield batch
            if not emitted:
                yield _empty_batch(reader.schema_arrow)

    def poll_schema(self) -> pa.Schema:
        with pa.parquet.ParquetFile(self.filename) as reader:
            return reader.schema_arrow


class PyArrowTableDataSource(DataSourceNode):
    """Feed a :class:`pyarrow.Table` or :class:`pyarrow.RecordBatch` already in memory to a plan."""

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        self.table = table
        self.is_recordbatch = isinstance(table, pa.RecordBatch)

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the chunks of the table, or the record batch as is."""
        if self.is_recordbatch:
            yield self.table
            return

        batches = self.table.to_batches()
        if not batches:
            # Tables with no rows might have no chunks at all.
            yield _empty_batch(self.table.schema)
        else:
            yield from batches

    def poll_schema(self) -> pa.Schema:
        return self.table.schema


def _empty_batch(schema: pa.Schema) -> pa.RecordBatch:
    return pa.RecordBatch.from_arrays(
        [pa.array([], type=field.type) for field in schema], schema=schema
    )

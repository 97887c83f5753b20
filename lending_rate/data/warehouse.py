"""
Warehouse Reader

Reads loan applications from BigQuery through the Spark BigQuery connector.
Sessions are scoped: `warehouse_session` opens one for a unit of work and
stops it on exit, and readers receive the session explicitly.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple
import logging

import pandas as pd

from lending_rate.config.schema import WarehouseConfig
from lending_rate.core.base import SparkComponent
from lending_rate.core.exceptions import DataReaderError
from lending_rate.data.schema import APPLICANT_SCHEMA, ColumnSpec, column_names


logger = logging.getLogger(__name__)


@contextmanager
def warehouse_session(
    config: WarehouseConfig,
    builder: Any = None,
) -> Iterator[Any]:
    """
    Open a SparkSession for one logical unit of work.

    Args:
        config: Warehouse configuration
        builder: SparkSession builder to use (defaults to SparkSession.builder)

    Yields:
        Active SparkSession, stopped when the block exits
    """
    if builder is None:
        from pyspark.sql import SparkSession
        builder = SparkSession.builder

    builder = builder.appName(config.app_name)
    if config.master:
        builder = builder.master(config.master)
    for key, value in config.spark_config.items():
        builder = builder.config(key, value)

    try:
        spark = builder.getOrCreate()
    except Exception as e:
        raise DataReaderError("Failed to open warehouse session", cause=e)

    spark.sparkContext.setLogLevel("WARN")
    logger.info(f"WAREHOUSE | Session opened: {config.app_name}")
    try:
        yield spark
    finally:
        spark.stop()
        logger.info("WAREHOUSE | Session closed")


class WarehouseReader(SparkComponent):
    """
    Reads tables and pushed-down queries from BigQuery.

    Supports column projection, row filtering and aggregation pushdown;
    everything else happens in pandas after the read.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        spark_session: Any,
        project_id: Optional[str] = None,
        dataset: Optional[str] = None
    ):
        """
        Initialize the reader.

        Args:
            config: Run configuration dictionary (uses the 'warehouse' section)
            spark_session: Active SparkSession owned by the caller
            project_id: GCP project ID (optional, uses config if not provided)
            dataset: BigQuery dataset (optional, uses config if not provided)
        """
        super().__init__(config, spark_session, name="WarehouseReader")

        warehouse = self.get_config('warehouse', {})
        self.project_id = project_id or warehouse.get('project_id')
        self.dataset = dataset or warehouse.get('dataset')
        self.table = warehouse.get('table', 'loans')
        self.materialization_dataset = warehouse.get(
            'materialization_dataset',
            'temp_spark_bq'
        )

    def validate(self) -> bool:
        """Validate connection settings."""
        if not super().validate():
            return False

        if not self.project_id:
            self.logger.error("GCP project_id not configured")
            return False

        if not self.dataset:
            self.logger.error("BigQuery dataset not configured")
            return False

        return True

    def _get_full_table_name(self, table: str) -> str:
        if '.' in table:
            return table
        return f"{self.project_id}.{self.dataset}.{table}"

    def _reader(self) -> Any:
        return (
            self.spark.read.format("bigquery")
            .option("materializationDataset", self.materialization_dataset)
        )

    def read(
        self,
        source: str,
        columns: Optional[List[str]] = None,
        filter_expr: Optional[str] = None,
        sample_fraction: Optional[float] = None
    ) -> Any:
        """
        Read a table as a Spark DataFrame.

        Args:
            source: Table name (simple or fully qualified)
            columns: Optional column projection
            filter_expr: Optional SQL filter pushed to the warehouse
            sample_fraction: Optional sampling fraction (0.0 to 1.0)

        Returns:
            Spark DataFrame
        """
        self._start_execution()

        try:
            full_table = self._get_full_table_name(source)
            self.logger.info(f"Reading from BigQuery: {full_table}")

            reader = self._reader().option("table", full_table)
            if columns:
                reader = reader.option("selectedFields", ",".join(columns))
            if filter_expr:
                reader = reader.option("filter", filter_expr)

            df = reader.load()

            if sample_fraction and 0 < sample_fraction < 1:
                seed = self.get_config('reproducibility.global_seed', 42)
                df = df.sample(fraction=sample_fraction, seed=seed)
                self.logger.info(f"Sampled {sample_fraction * 100:.1f}% of data")

            self._end_execution()
            return df

        except Exception as e:
            self._end_execution()
            raise DataReaderError(
                f"Failed to read from BigQuery table: {source}",
                source=source,
                cause=e
            )

    def read_pandas(self, source: str, **kwargs) -> pd.DataFrame:
        """Read a table and collect it into pandas."""
        df = self.read(source, **kwargs)
        try:
            result = df.toPandas()
        except Exception as e:
            raise DataReaderError(
                f"Failed to collect table: {source}", source=source, cause=e
            )
        self.logger.info(f"Read {len(result):,} rows from {source}")
        return result

    def read_with_filter(
        self,
        source: str,
        filter_column: str,
        filter_values: List[Any],
        **kwargs
    ) -> Any:
        """
        Read rows whose filter_column is in filter_values.

        Args:
            source: Table name
            filter_column: Column to filter on
            filter_values: Values to include
            **kwargs: Additional read options

        Returns:
            Filtered Spark DataFrame
        """
        if not filter_values:
            raise DataReaderError(
                "read_with_filter needs at least one filter value", source=source
            )

        if isinstance(filter_values[0], str):
            values_str = ", ".join([f"'{v}'" for v in filter_values])
        else:
            values_str = ", ".join([str(v) for v in filter_values])

        filter_expr = f"{filter_column} IN ({values_str})"

        existing_filter = kwargs.pop('filter_expr', None)
        if existing_filter:
            filter_expr = f"({existing_filter}) AND ({filter_expr})"

        return self.read(source, filter_expr=filter_expr, **kwargs)

    def build_aggregate_query(
        self,
        source: str,
        group_by: List[str],
        aggregations: Dict[str, str],
        filter_expr: Optional[str] = None
    ) -> str:
        """
        Build the SQL for an aggregation executed inside the warehouse.

        Args:
            source: Table name
            group_by: Grouping columns
            aggregations: Output alias -> SQL aggregate expression
            filter_expr: Optional WHERE clause

        Returns:
            SQL string
        """
        if not aggregations:
            raise DataReaderError("No aggregations requested", source=source)

        select_parts = list(group_by) + [
            f"{expr} AS {alias}" for alias, expr in aggregations.items()
        ]
        sql = f"SELECT {', '.join(select_parts)} FROM `{self._get_full_table_name(source)}`"
        if filter_expr:
            sql += f" WHERE {filter_expr}"
        if group_by:
            sql += f" GROUP BY {', '.join(group_by)}"
        return sql

    def aggregate(
        self,
        source: str,
        group_by: List[str],
        aggregations: Dict[str, str],
        filter_expr: Optional[str] = None
    ) -> pd.DataFrame:
        """
        Run an aggregation in the warehouse and return the (small) result.

        Example:
            reader.aggregate("loans", ["term"], {"mean_rate": "AVG(int_rate)"})
        """
        sql = self.build_aggregate_query(source, group_by, aggregations, filter_expr)
        self.logger.info(f"Aggregation pushdown: {sql}")

        try:
            df = (
                self._reader()
                .option("viewsEnabled", "true")
                .option("query", sql)
                .load()
            )
            return df.toPandas()
        except Exception as e:
            raise DataReaderError(
                f"Aggregation query failed on {source}", source=source, cause=e
            )

    def get_schema(self, source: str) -> Dict[str, str]:
        """
        Return {column: type} for a table without reading its rows.
        """
        try:
            df = self._reader().option("table", self._get_full_table_name(source)).load()
            return {field.name: str(field.dataType) for field in df.schema.fields}
        except Exception as e:
            raise DataReaderError(
                f"Failed to read schema of {source}", source=source, cause=e
            )

    def read_applicants(
        self,
        schema: Tuple[ColumnSpec, ...] = APPLICANT_SCHEMA,
        filter_expr: Optional[str] = None,
        sample_fraction: Optional[float] = None
    ) -> pd.DataFrame:
        """
        Read the loan applications table projected to the declared schema.
        """
        return self.read_pandas(
            self.table,
            columns=column_names(schema),
            filter_expr=filter_expr,
            sample_fraction=sample_fraction,
        )

"""
Storage of experiment results in a relational database.

Every operation borrows one connection from the SQLAlchemy engine and
returns it when done. Database errors never reach the caller: they are
logged, and the operation reports the same value as "nothing found".
"""

import math
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy import (
    Column,
    Double,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    inspect,
    select,
)
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError

from .config import (
    DB_CREATE_TABLE,
    DB_HOST,
    DB_NAME,
    DB_PARAMETER_FILE,
    DB_PASS,
    DB_PORT,
    DB_RESULTS_TABLE,
    DB_USER,
    METRICS,
)
from .evaluation import ExperimentResult
from .log_setup import get_logger

logger = get_logger(__name__)


class ResultStorage(ABC):
    """Sink for experiment results that can tell which results exist."""

    @abstractmethod
    def add_result(self, result: ExperimentResult):
        """Store one result."""
        raise NotImplementedError

    @abstractmethod
    def contains_result(self, experiment_name: str, product_name: str,
                        classifier_name: str) -> int:
        """Number of stored results for the experiment, product and classifier."""
        raise NotImplementedError

    @abstractmethod
    def contains_heterogeneous_result(self, experiment_name: str, product_name: str,
                                      classifier_name: str, train_product_name: str) -> int:
        """Number of stored results of a classifier trained on another product."""
        raise NotImplementedError


def results_table(name: str, metadata: MetaData) -> Table:
    """Definition of the results table."""
    return Table(
        name, metadata,
        Column('idresults', Integer, primary_key=True, autoincrement=True),
        Column('configurationName', String(45), nullable=False),
        Column('productName', String(45), nullable=False),
        Column('classifier', String(45), nullable=False),
        Column('testsize', Integer),
        Column('trainsize', Integer),
        *[Column(metric, Double) for metric in METRICS],
        mysql_engine='InnoDB',
        mysql_auto_increment='77777',
        mysql_charset='utf8',
    )


def load_properties(filepath: str) -> Dict[str, str]:
    """
    Read a ``key=value`` properties file.

    Raises:
        OSError: if the file cannot be read
    """
    properties = {}
    with open(filepath, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line[0] in '#!':
                continue
            separator = min((line.find(s) for s in '=:' if s in line), default=-1)
            if separator < 0:
                properties[line] = ''
            else:
                properties[line[:separator].strip()] = line[separator + 1:].strip()
    return properties


class SQLResultStorage(ResultStorage):
    """
    Result storage backed by a SQL database (MySQL by default).

    Without an explicit URL the connection settings are read from a
    properties file with the keys ``db.host``, ``db.port``, ``db.name``,
    ``db.user``, ``db.pass``, ``db.results.tablename`` and
    ``db.results.createtable``. Missing keys, or a missing file, fall back
    to the defaults in the config module.
    """

    def __init__(self,
                 url: Optional[str] = None,
                 parameter_file: Optional[str] = None,
                 table_name: Optional[str] = None,
                 create_table: Optional[bool] = None):
        """
        Args:
            url: SQLAlchemy database URL; overrides the parameter file
            parameter_file: Properties file with the connection settings
            table_name: Name of the results table
            create_table: Create the results table if it does not exist
        """
        properties = {}
        if url is None:
            parameter_file = parameter_file or DB_PARAMETER_FILE
            try:
                properties = load_properties(parameter_file)
            except OSError as e:
                logger.warning("Could not load %s (%s), using default DB configuration",
                               os.path.abspath(parameter_file), e)

            url = URL.create(
                'mysql+pymysql',
                username=properties.get('db.user', DB_USER),
                password=properties.get('db.pass', DB_PASS),
                host=properties.get('db.host', DB_HOST),
                port=int(properties.get('db.port', DB_PORT)),
                database=properties.get('db.name', DB_NAME),
            )

        self.results_table_name = table_name or properties.get('db.results.tablename',
                                                              DB_RESULTS_TABLE)
        if create_table is None:
            create_table = properties.get('db.results.createtable',
                                          str(DB_CREATE_TABLE)).lower() == 'true'

        self.engine = create_engine(url)
        self.table = results_table(self.results_table_name, MetaData())

        if create_table and not self.does_results_table_exist():
            self.create_results_table()

    @staticmethod
    def _log_error(error: SQLAlchemyError):
        orig = getattr(error, 'orig', None)
        sqlstate = getattr(orig, 'sqlstate', None) or error.code
        vendor_code = getattr(orig, 'sqlite_errorcode', None)
        if vendor_code is None and orig is not None and orig.args and isinstance(orig.args[0], int):
            vendor_code = orig.args[0]
        logger.error("Problem with database connection: %s (SQLState: %s, VendorError: %s)",
                     orig if orig is not None else error, sqlstate, vendor_code)

    def add_result(self, result: ExperimentResult):
        # NaN cannot be stored in a double column
        record = {
            column: None if isinstance(value, float) and math.isnan(value) else value
            for column, value in result.to_record().items()
        }
        try:
            with self.engine.begin() as connection:
                outcome = connection.execute(self.table.insert().values(record))
                if outcome.rowcount < 1:
                    logger.error("Insert failed.")
        except SQLAlchemyError as e:
            self._log_error(e)

    def contains_result(self, experiment_name: str, product_name: str,
                        classifier_name: str) -> int:
        query = (
            select(func.count())
            .select_from(self.table)
            .where(self.table.c.configurationName == experiment_name)
            .where(self.table.c.productName == product_name)
            .where(self.table.c.classifier == classifier_name)
        )
        try:
            with self.engine.connect() as connection:
                return int(connection.execute(query).scalar_one())
        except SQLAlchemyError as e:
            self._log_error(e)
            return 0

    def contains_heterogeneous_result(self, experiment_name: str, product_name: str,
                                      classifier_name: str, train_product_name: str) -> int:
        # TODO: needs a trainProductName column in the results table
        return 0

    def does_results_table_exist(self) -> bool:
        try:
            return inspect(self.engine).has_table(self.results_table_name)
        except SQLAlchemyError as e:
            self._log_error(e)
            return False

    def create_results_table(self):
        try:
            self.table.create(self.engine)
            logger.debug("Created new table %s", self.results_table_name)
        except SQLAlchemyError as e:
            self._log_error(e)

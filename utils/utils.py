import networkx as nx
import time
import logging
import config
import os
import datetime

from config import LOG_PATH

# Cities are undirected; node index starts from 0 and must stay below the city population.


def timer(func):
    def wrapper(*args, **kwargs):
        start_time = time.time()
        result = func(*args, **kwargs)
        end_time = time.time()
        elapsed_time = end_time - start_time
        return result, elapsed_time
    return wrapper


def setup_logger(name, save_file=False):
    """Create a logger with the specified name."""
    # Create a logger
    logger = logging.getLogger(name)
    logger.setLevel(config.LOGGING_LEVEL)  # Set the minimum logging level

    if logger.handlers:
        return logger

    # Create console handler
    ch = logging.StreamHandler()
    ch.setLevel(config.LOGGING_LEVEL)

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Add formatter to ch
    ch.setFormatter(formatter)

    # Add ch to logger
    logger.addHandler(ch)

    if save_file:
        os.makedirs(LOG_PATH, exist_ok=True)
        log_file_path = os.path.join(LOG_PATH, f"{datetime.datetime.now().strftime('%Y-%m-%d')}.log")
        fh = logging.FileHandler(log_file_path)
        fh.setLevel(config.LOGGING_LEVEL)
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def read_network(file_path: str, n: int) -> nx.Graph:
    """
    Read a friendship network from an edge-list file.

    Parameters:
    - file_path (str): Path to the file, one "i j" pair per line. Blank lines and
      lines starting with "#" are skipped.
    - n (int): Population of the city; nodes 0..n-1 are always present.

    Returns:
    - nx.Graph: Generated undirected NetworkX graph.
    """

    graph = nx.Graph()
    graph.add_nodes_from(range(n))

    with open(file_path, 'r', encoding='utf-8') as file:
        for line_no, line in enumerate(file, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            nodes = line.split()
            if len(nodes) < 2:
                raise ValueError(f"{file_path}:{line_no}: expected two node indices, got {line!r}")
            source, target = int(nodes[0]), int(nodes[1])
            if not (0 <= source < n and 0 <= target < n):
                raise ValueError(f"{file_path}:{line_no}: edge ({source}, {target}) outside population {n}")
            if source != target:
                graph.add_edge(source, target)

    return graph


def save_network(graph: nx.Graph, file_path: str) -> None:
    """
    Save a friendship network to an edge-list file.

    Parameters:
    - graph (nx.Graph): The network to be saved.
    - file_path (str): Path to the file where the network data will be saved.
    """

    edge_list = list(graph.edges)
    with open(file_path, 'w', encoding='utf-8') as file_object:
        for edge in edge_list:
            file_object.write(str(edge[0]) + "\t" + str(edge[1]) + "\n")


def create_output_file(output_file_name=None):
    """Return the path of a fresh CSV file under ``config.RESULT_PATH``."""
    os.makedirs(config.RESULT_PATH, exist_ok=True)
    if output_file_name is None:
        output_file_name = f"{datetime.datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.csv"
    else:
        output_file_name = f"{output_file_name}.csv"
    return os.path.join(config.RESULT_PATH, output_file_name)

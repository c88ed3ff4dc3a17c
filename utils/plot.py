import networkx as nx
import matplotlib.pyplot as plt
import datetime
import config
import os
from utils.utils import save_network


def get_node_positions(graph: nx.Graph, method: str = None):
    """
    Compute node positions for visualization based on the specified method.

    Parameters:
    - graph (nx.Graph): The network for which node positions are computed.
    - method (str): "rings" puts every connected component on its own circle,
      anything else uses the shell layout.

    Returns:
    - pos (dict): A dictionary of node positions.
    """
    if method == "rings":
        pos = {}
        components = sorted(nx.connected_components(graph), key=min)
        for offset, component in enumerate(components):
            sub_pos = nx.circular_layout(graph.subgraph(sorted(component)), center=(2.5 * offset, 0))
            pos.update(sub_pos)
    else:
        pos = nx.shell_layout(graph)

    return pos


def save_graph(graphs: list):
    """Save the current figure and the drawn networks under ``config.TEMP_PATH``."""
    os.makedirs(os.path.join(config.TEMP_PATH, "fig"), exist_ok=True)
    os.makedirs(os.path.join(config.TEMP_PATH, "net"), exist_ok=True)
    current_time = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    fig_path = os.path.join(config.TEMP_PATH, "fig", f"{current_time}.png")
    plt.savefig(fig_path)
    for i in range(len(graphs)):
        save_network(graphs[i], os.path.join(config.TEMP_PATH, "net", f"{current_time}_{i}.txt"))
    return fig_path


def visualize_cities(graph_a: nx.Graph, graph_b: nx.Graph, title: str = None, show: bool = True):
    """
    Draw both cities side by side and save the figure.

    Parameters:
    - graph_a (nx.Graph): Friendship network of city A.
    - graph_b (nx.Graph): Friendship network of city B.
    - title (str): Optional figure title, e.g. the search result.
    - show (bool): Open a window after saving.

    Returns:
    - str: Path of the saved figure.
    """
    fig, axes = plt.subplots(nrows=1, ncols=2)

    for ax, graph, name, color in zip(axes, (graph_a, graph_b), ("City A", "City B"), ("skyblue", "lightgreen")):
        pos = get_node_positions(graph, method="rings")
        nx.draw(graph, pos, ax=ax, with_labels=True, node_color=color, width=2)
        ax.set_title(f"{name} ({graph.number_of_nodes()} members)")

    if title:
        fig.suptitle(title)
    plt.tight_layout()
    fig_path = save_graph([graph_a, graph_b])
    if show:
        plt.show()
    plt.close(fig)
    return fig_path

from .draw import draw_graph, to_graphviz
